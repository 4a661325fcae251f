"""
Text normalization helpers shared by keyword search and the mock embedder.
"""
import re
from typing import List

_TOKEN_RE = re.compile(r"\w+")


def normalize(text: str) -> str:
    """Case-fold text so Turkish I variants compare equal.

    str.lower() turns "İ" into "i" followed by a combining dot, and "I" into
    a dotted "i" while Turkish text writes it as "ı". All four letters fold
    to a plain "i" so "KALICI", "kalıcı" and "İTİRAZ" match their lowercase
    forms. The mapping keeps string length, so indices line up with the
    original text.
    """
    if not text:
        return ""
    return text.replace("İ", "i").lower().replace("ı", "i")


def tokenize(text: str) -> List[str]:
    """Split normalized text into word tokens (Turkish letters included)."""
    return _TOKEN_RE.findall(normalize(text))


def is_blank(value) -> bool:
    """True for None, empty strings and whitespace-only strings."""
    return value is None or not str(value).strip()


def excerpt_around(content: str, query: str, max_length: int = 150) -> str:
    """Cut an excerpt of content centred on the first occurrence of query.

    Falls back to the head of the content when the query does not occur.
    """
    index = normalize(content).find(normalize(query)) if query else -1

    if index == -1:
        return content[:max_length] + ("..." if len(content) > max_length else "")

    start = max(0, index - 50)
    end = min(len(content), index + max_length)
    excerpt = content[start:end]

    if start > 0:
        excerpt = "..." + excerpt
    if end < len(content):
        excerpt = excerpt + "..."

    return excerpt
