"""
Chunker module for splitting knowledge-base content into retrieval chunks.

Long text is split on paragraph boundaries into chunks of at most
max_chunk_size characters. Every chunk after the first starts with the last
`overlap` characters of the previous chunk so that a sentence cut at a
boundary keeps its context. Fragments shorter than min_chunk_size are merged
into the previous chunk when they fit, otherwise dropped.

Each content unit (guide article, penalty rule, command, procedure) is first
rendered into labelled Turkish text, then chunked into Chunk records whose
ids are derived from the unit id and the chunk index.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List

from .. import config
from ..errors import ValidationError
from ..models.content import ContentType, ContentUnit
from ..models.retrieval import Chunk, ChunkMetadata

logger = logging.getLogger(__name__)

_PARAGRAPH_RE = re.compile(r"\n\s*\n")
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class ChunkingConfig:
    """Chunk size limits in characters."""
    max_chunk_size: int = config.CHUNK_MAX_SIZE
    overlap: int = config.CHUNK_OVERLAP
    min_chunk_size: int = config.CHUNK_MIN_SIZE

    def validate(self) -> None:
        if self.max_chunk_size <= 0:
            raise ValidationError("max_chunk_size", "max_chunk_size must be positive")
        if self.min_chunk_size < 0 or self.min_chunk_size > self.max_chunk_size:
            raise ValidationError("min_chunk_size", "min_chunk_size must be between 0 and max_chunk_size")
        if self.overlap < 0 or self.overlap >= self.max_chunk_size:
            raise ValidationError("overlap", "overlap must be between 0 and max_chunk_size")


DEFAULT_CHUNKING_CONFIG = ChunkingConfig()


def chunk_text(text: str, chunking: ChunkingConfig = DEFAULT_CHUNKING_CONFIG) -> List[str]:
    """Split text into bounded, paragraph-respecting, overlapping chunks.

    Args:
        text: Raw text, paragraphs separated by blank lines.
        chunking: Size limits.

    Returns:
        Ordered chunk strings. Empty for blank input or input shorter
        than min_chunk_size.
    """
    chunking.validate()

    if not text or len(text.strip()) < max(chunking.min_chunk_size, 1):
        return []

    max_size = chunking.max_chunk_size
    chunks: List[str] = []
    buffer = ""

    for paragraph in _split_paragraphs(text):
        if len(paragraph) > max_size:
            _flush(buffer, chunks, chunking)
            buffer = ""
            for piece in _split_long_paragraph(paragraph, max_size):
                _flush(piece, chunks, chunking)
            continue

        candidate = f"{buffer}\n\n{paragraph}" if buffer else paragraph
        if len(candidate) <= max_size:
            buffer = candidate
        else:
            _flush(buffer, chunks, chunking)
            buffer = paragraph

    _flush(buffer, chunks, chunking)

    if chunking.overlap > 0 and len(chunks) > 1:
        chunks = _apply_overlap(chunks, chunking.overlap)

    return chunks


def _split_paragraphs(text: str) -> List[str]:
    return [p.strip() for p in _PARAGRAPH_RE.split(text) if p.strip()]


def _flush(fragment: str, chunks: List[str], chunking: ChunkingConfig) -> None:
    """Append fragment as a chunk, or merge/drop it when it is too short."""
    fragment = fragment.strip()
    if not fragment:
        return

    if len(fragment) >= chunking.min_chunk_size:
        chunks.append(fragment)
        return

    if chunks and len(chunks[-1]) + 2 + len(fragment) <= chunking.max_chunk_size:
        chunks[-1] = f"{chunks[-1]}\n\n{fragment}"
    else:
        logger.debug(f"[CHUNKER] Dropped short fragment ({len(fragment)} chars)")


def _split_long_paragraph(paragraph: str, max_size: int) -> List[str]:
    """Split an oversized paragraph on sentence ends, wrapping huge sentences."""
    pieces: List[str] = []
    current = ""

    for sentence in _SENTENCE_RE.split(paragraph):
        sentence = sentence.strip()
        if not sentence:
            continue

        for part in _wrap_words(sentence, max_size):
            candidate = f"{current} {part}" if current else part
            if len(candidate) <= max_size:
                current = candidate
            else:
                pieces.append(current)
                current = part

    if current:
        pieces.append(current)
    return pieces


def _wrap_words(sentence: str, max_size: int) -> List[str]:
    if len(sentence) <= max_size:
        return [sentence]

    parts: List[str] = []
    current = ""
    for word in sentence.split():
        # A single word longer than the limit is cut hard
        while len(word) > max_size:
            if current:
                parts.append(current)
                current = ""
            parts.append(word[:max_size])
            word = word[max_size:]
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_size:
            current = candidate
        else:
            parts.append(current)
            current = word
    if current:
        parts.append(current)
    return parts


def _apply_overlap(chunks: List[str], overlap: int) -> List[str]:
    result = [chunks[0]]
    for previous, current in zip(chunks, chunks[1:]):
        result.append(f"{previous[-overlap:]} {current}")
    return result


# ----------------------------------------------------------------------
# Content units -> chunks
# ----------------------------------------------------------------------

def render_unit_text(unit: ContentUnit) -> str:
    """Render a content unit as labelled text for chunking and embedding."""
    if unit.type is ContentType.GUIDE:
        return unit.content

    if unit.type is ContentType.PENALTY:
        lines = [
            f"Ceza: {unit.name} ({unit.code})",
            f"Kategori: {unit.category}",
            f"Süre: {unit.duration}",
            f"Açıklama: {unit.description}",
        ]
        if unit.conditions:
            lines.append(f"Koşullar: {', '.join(unit.conditions)}")
        if unit.alternatives:
            lines.append(f"Alternatifler: {', '.join(unit.alternatives)}")
        if unit.examples:
            lines.append(f"Örnekler: {'; '.join(unit.examples)}")
        return "\n".join(lines)

    if unit.type is ContentType.COMMAND:
        lines = [
            f"Komut: {unit.command}",
            f"Açıklama: {unit.description}",
            f"Kullanım: {unit.usage}",
        ]
        if unit.permissions:
            lines.append(f"Yetkiler: {', '.join(unit.permissions)}")
        if unit.examples:
            lines.append(f"Örnekler: {'; '.join(unit.examples)}")
        return "\n".join(lines)

    if unit.type is ContentType.PROCEDURE:
        blocks = [
            f"Prosedür: {unit.title}",
            f"Açıklama: {unit.description}",
            f"Adımlar:\n{unit.steps}",
        ]
        if unit.required_permissions:
            blocks.append(f"Gerekli Yetkiler: {', '.join(unit.required_permissions)}")
        return "\n\n".join(blocks)

    raise TypeError(f"Unknown content unit: {unit!r}")


def chunk_unit(unit: ContentUnit, chunking: ChunkingConfig = DEFAULT_CHUNKING_CONFIG) -> List[Chunk]:
    """Chunk one content unit into Chunk records with positional metadata."""
    pieces = chunk_text(render_unit_text(unit), chunking)
    total = len(pieces)
    subcategory = getattr(unit, "subcategory", None)

    return [
        Chunk(
            id=f"{unit.id}-chunk-{index}",
            source_id=unit.id,
            source_type=unit.type,
            content=content,
            metadata=ChunkMetadata(
                title=unit.title,
                category=unit.category,
                keywords=tuple(unit.keywords),
                chunk_index=index,
                total_chunks=total,
                subcategory=subcategory,
            ),
        )
        for index, content in enumerate(pieces)
    ]


def chunk_all(units: Iterable[ContentUnit], chunking: ChunkingConfig = DEFAULT_CHUNKING_CONFIG) -> List[Chunk]:
    """Chunk a whole corpus, preserving unit order."""
    chunks: List[Chunk] = []
    unit_count = 0
    for unit in units:
        unit_count += 1
        unit_chunks = chunk_unit(unit, chunking)
        if not unit_chunks:
            logger.warning(f"[CHUNKER] No chunks produced for {unit.type.value} '{unit.id}'")
        chunks.extend(unit_chunks)

    logger.info(f"[CHUNKER] Created {len(chunks)} chunks from {unit_count} content units")
    return chunks


if __name__ == "__main__":
    # Standalone check: show chunk summary for the configured corpus
    logging.basicConfig(level=logging.INFO)
    from collections import Counter
    from ..content.loader import ContentLoader

    all_chunks = chunk_all(ContentLoader().load_all())
    print(f"\nTotal chunks: {len(all_chunks)}")
    type_counts = Counter(c.source_type.value for c in all_chunks)
    for source_type, count in sorted(type_counts.items()):
        print(f"  {source_type}: {count} chunks")
