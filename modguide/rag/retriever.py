"""
Retriever module for RAG context assembly at query time.

Embeds the user question, searches the vector store, filters by content
type, and builds a bounded context string plus deduplicated source
citations. The average relevance of the retrieved chunks decides how much
the assistant may trust the context (see determine_confidence_level).
"""

import logging
from typing import Dict, Iterable, List, Optional

from .. import config
from ..models.content import ContentType
from ..models.retrieval import (
    ConfidenceLevel,
    RetrievalResult,
    RetrievedChunk,
    SourceReference,
)
from ..utils.text import normalize
from .vector_store import VectorStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = config.RAG_TOP_K
DEFAULT_MIN_RELEVANCE = config.RAG_MIN_RELEVANCE
DEFAULT_MAX_CONTEXT_TOKENS = config.RAG_MAX_CONTEXT_TOKENS

# Rough token estimate used for the context budget
CHARS_PER_TOKEN = 4

# Penalty context: how many penalty and guide chunks to combine
PENALTY_TOP_K = 3
PENALTY_GUIDE_TOP_K = 2

HIGH_CONFIDENCE_THRESHOLD = 0.7
MEDIUM_CONFIDENCE_THRESHOLD = 0.4

# Violation and sanction vocabulary of the guide; a message containing any
# of these is answered from penalty rules first
PENALTY_KEYWORDS = [
    "ceza",
    "mute",
    "ban",
    "kick",
    "warn",
    "uyarı",
    "ihlal",
    "kural",
    "yasak",
    "adk",
    "hakaret",
    "spam",
    "reklam",
    "küfür",
    "flood",
    "caps",
    "mention",
    "süre",
    "gün",
    "saat",
    "kalıcı",
    "blacklist",
    "marked",
]

_PENALTY_TERMS = [normalize(k) for k in PENALTY_KEYWORDS]

SOURCE_TYPE_LABELS = {
    ContentType.GUIDE: "Kılavuz",
    ContentType.PENALTY: "Ceza",
    ContentType.COMMAND: "Komut",
    ContentType.PROCEDURE: "Prosedür",
}


def is_penalty_related_query(message: str) -> bool:
    """True when the message mentions any penalty/violation keyword."""
    lowered = normalize(message or "")
    return any(term in lowered for term in _PENALTY_TERMS)


def determine_confidence_level(result: RetrievalResult) -> ConfidenceLevel:
    """Map retrieval quality to high/medium/low.

    No chunks is always low; otherwise the average relevance decides.
    """
    if not result.chunks:
        return ConfidenceLevel.LOW
    if result.average_relevance >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.HIGH
    if result.average_relevance >= MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def format_sources_for_citation(sources: List[SourceReference]) -> str:
    """Render a numbered citation block for an assistant answer.

    Returns:
        "" when there are no sources, otherwise a block such as
        "\\n\\n📚 Kaynaklar:\\n[1] Ceza: ADK-001 - ADK İhlali (İlgililik: %85)".
    """
    if not sources:
        return ""

    lines = []
    for index, source in enumerate(sources, start=1):
        label = SOURCE_TYPE_LABELS.get(ContentType(source.type), str(source.type))
        percent = int(source.relevance_score * 100 + 0.5)
        lines.append(f"[{index}] {label}: {source.title} (İlgililik: %{percent})")

    return "\n\n📚 Kaynaklar:\n" + "\n".join(lines)


def build_context_text(chunks: Iterable[RetrievedChunk], max_tokens: int) -> str:
    """Concatenate "[title]\\ncontent" blocks until the character budget is hit."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    parts: List[str] = []
    total_chars = 0

    for chunk in chunks:
        block = f"[{chunk.title}]\n{chunk.content}\n\n"
        if total_chars + len(block) > max_chars:
            logger.info(
                f"[RETRIEVER] Reached context limit ({max_chars} chars), "
                f"stopping at {len(parts)} chunks"
            )
            break
        parts.append(block)
        total_chars += len(block)

    return "".join(parts).strip()


def extract_source_references(chunks: Iterable[RetrievedChunk]) -> List[SourceReference]:
    """One reference per source id, keeping its best score, sorted by relevance."""
    by_source: Dict[str, SourceReference] = {}

    for chunk in chunks:
        existing = by_source.get(chunk.source_id)
        if existing is None or existing.relevance_score < chunk.relevance_score:
            by_source[chunk.source_id] = SourceReference(
                id=chunk.source_id,
                title=chunk.title,
                type=chunk.source_type,
                category=chunk.category,
                relevance_score=chunk.relevance_score,
                subcategory=chunk.subcategory,
            )

    return sorted(by_source.values(), key=lambda s: s.relevance_score, reverse=True)


def average_relevance(chunks: List[RetrievedChunk]) -> float:
    if not chunks:
        return 0.0
    return sum(c.relevance_score for c in chunks) / len(chunks)


def _assemble(query: str, chunks: List[RetrievedChunk], max_tokens: int) -> RetrievalResult:
    return RetrievalResult(
        chunks=chunks,
        context=build_context_text(chunks, max_tokens),
        sources=extract_source_references(chunks),
        average_relevance=average_relevance(chunks),
        query=query,
    )


class Retriever:
    """Retrieves RAG context from a VectorStore."""

    def __init__(self, store: VectorStore):
        self.store = store

    def is_ready(self) -> bool:
        return self.store.is_initialized

    async def initialize(self) -> None:
        await self.store.initialize()

    async def retrieve_context(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        min_relevance: float = DEFAULT_MIN_RELEVANCE,
        content_types: Optional[Iterable[ContentType]] = None,
        max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS,
    ) -> RetrievalResult:
        """Retrieve the most relevant chunks for a query.

        Args:
            query: User question. Blank queries return an empty result
                   without touching the store.
            top_k: Maximum chunks to return.
            min_relevance: Minimum cosine similarity (0-1).
            content_types: Restrict results to these content types.
            max_context_tokens: Approximate token budget for the context.

        Returns:
            RetrievalResult with ranked chunks, context, sources and
            average relevance.
        """
        if not query or not query.strip():
            return RetrievalResult()

        trimmed = query.strip()
        allowed = {ContentType(t) for t in content_types} if content_types is not None else set(ContentType)

        # Over-fetch so that type filtering still leaves top_k candidates
        results = await self.store.search_similar(trimmed, top_k * 2, min_relevance)
        chunks = [
            RetrievedChunk.from_search_result(r)
            for r in results
            if r.chunk.source_type in allowed
        ][:top_k]

        logger.info(
            f"[RETRIEVER] Retrieved {len(chunks)} chunks for query: {trimmed[:80]}"
        )
        return _assemble(trimmed, chunks, max_context_tokens)

    async def retrieve_by_content_type(self, query: str, content_type: ContentType, **options) -> RetrievalResult:
        return await self.retrieve_context(query, content_types=[content_type], **options)

    async def retrieve_penalty_context(
        self,
        query: str,
        min_relevance: float = DEFAULT_MIN_RELEVANCE,
        max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS,
    ) -> RetrievalResult:
        """Penalty rules first, backed by the guide sections that explain them."""
        if not query or not query.strip():
            return RetrievalResult()

        penalty_result = await self.retrieve_by_content_type(
            query, ContentType.PENALTY, top_k=PENALTY_TOP_K, min_relevance=min_relevance,
        )
        guide_result = await self.retrieve_by_content_type(
            query, ContentType.GUIDE, top_k=PENALTY_GUIDE_TOP_K, min_relevance=min_relevance,
        )

        # Stable sort: on equal scores penalty chunks stay ahead of guide chunks
        chunks = sorted(
            penalty_result.chunks + guide_result.chunks,
            key=lambda c: c.relevance_score,
            reverse=True,
        )
        return _assemble(query.strip(), chunks, max_context_tokens)

    async def retrieve_command_context(self, query: str, **options) -> RetrievalResult:
        return await self.retrieve_by_content_type(query, ContentType.COMMAND, **options)

    async def retrieve_procedure_context(self, query: str, **options) -> RetrievalResult:
        return await self.retrieve_by_content_type(query, ContentType.PROCEDURE, **options)

    def get_full_source_content(self, source_id: str) -> Optional[str]:
        """Re-join all indexed chunks of one source, in chunk order."""
        chunks = self.store.get_chunks_by_source_id(source_id)
        if not chunks:
            return None
        ordered = sorted(chunks, key=lambda c: c.metadata.chunk_index)
        return "\n\n".join(c.content for c in ordered)
