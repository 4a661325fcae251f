"""
Keyword search over the knowledge base.

Scores every content unit against the query with fixed field weights, so a
match in the title always counts for more than a keyword match, and a
keyword match more than one in the body text:

    title   : whole phrase 0.6 + share of query terms found 0.3
    keywords: whole phrase 0.4 + share of query terms found 0.2
    body    : whole phrase 0.2 + share of query terms found 0.1

The sum is clamped to [0, 1]. Units scoring zero are left out.
"""

import logging
from typing import List, Optional, Sequence

from ..models.content import ContentEnvelope, envelope
from ..models.retrieval import SearchResult
from ..utils.text import excerpt_around, normalize, tokenize
from .loader import ContentLoader

logger = logging.getLogger(__name__)

TITLE_PHRASE_WEIGHT = 0.6
TITLE_TERM_WEIGHT = 0.3
KEYWORD_PHRASE_WEIGHT = 0.4
KEYWORD_TERM_WEIGHT = 0.2
BODY_PHRASE_WEIGHT = 0.2
BODY_TERM_WEIGHT = 0.1

# Moderator jargon -> query understood by the guide
COMMON_TERMS = {
    "hakaret": "hakaret",
    "küfür": "hakaret",
    "spam": "spam",
    "flood": "spam",
    "xp abuse": "xp",
    "xp": "xp",
    "adk": "adk",
    "banlanana kadar mute": "blacklist",
    "bl": "blacklist",
    "blacklist": "blacklist",
    "marked": "marked",
    "noroom": "noroom",
    "pls": "pls",
    "mute": "mute",
    "sustur": "mute",
    "timeout": "mute",
    "ban": "ban",
    "reklam": "reklam",
    "davet linki": "reklam",
}


def _term_coverage(terms: Sequence[str], field_text: str) -> float:
    if not terms:
        return 0.0
    found = sum(1 for term in terms if term in field_text)
    return found / len(terms)


def score_envelope(item: ContentEnvelope, query: str) -> float:
    """Relevance of one unit for an already normalized query, in [0, 1]."""
    terms = list(dict.fromkeys(tokenize(query)))
    title = normalize(item.title)
    keywords = normalize(" ".join(item.keywords))
    body = normalize(item.body)

    score = 0.0
    if query in title:
        score += TITLE_PHRASE_WEIGHT
    score += TITLE_TERM_WEIGHT * _term_coverage(terms, title)

    if query in keywords:
        score += KEYWORD_PHRASE_WEIGHT
    score += KEYWORD_TERM_WEIGHT * _term_coverage(terms, keywords)

    if query in body:
        score += BODY_PHRASE_WEIGHT
    score += BODY_TERM_WEIGHT * _term_coverage(terms, body)

    return max(0.0, min(1.0, score))


class KeywordSearchEngine:
    """Lexical search over the units served by a ContentLoader."""

    def __init__(self, loader: Optional[ContentLoader] = None):
        self.loader = loader or ContentLoader()

    def search_content(self, query: str) -> List[SearchResult]:
        """Search all guides, penalties, commands and procedures.

        Args:
            query: Free text. Blank input returns [].

        Returns:
            Matching units, best first. Equal scores keep load order.
        """
        if not query or not query.strip():
            return []

        trimmed = query.strip()
        normalized = normalize(trimmed)
        results = []

        for unit in self.loader.load_all():
            item = envelope(unit)
            score = score_envelope(item, normalized)
            if score <= 0:
                continue
            results.append(
                SearchResult(
                    id=item.id,
                    type=item.type,
                    title=item.title,
                    excerpt=excerpt_around(item.body, trimmed),
                    category=item.category,
                    relevance_score=score,
                    href=item.href,
                )
            )

        results = sorted(results, key=lambda r: r.relevance_score, reverse=True)
        logger.info(f"[SEARCH] {len(results)} results for '{trimmed[:80]}'")
        return results

    def search_by_common_term(self, term: str) -> List[SearchResult]:
        """Resolve moderator slang ("bl", "küfür") before searching."""
        if not term or not term.strip():
            return []

        mapped = COMMON_TERMS.get(normalize(term.strip()))
        if mapped is None:
            return self.search_content(term)

        logger.debug(f"[SEARCH] Common term '{term.strip()}' mapped to '{mapped}'")
        return self.search_content(mapped)
