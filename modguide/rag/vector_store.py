"""
In-memory vector store for knowledge-base chunks.

Holds (chunk, embedding) entries for the lifetime of the process. The store
is built by one explicit initialize() call: content is loaded, chunked and
embedded once, and embeddings are never mutated afterwards. reset() empties
it again (used after content edits and between tests).

Searches rank every entry by cosine similarity against the query vector.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..content.loader import ContentLoader
from ..models.content import ContentType
from ..models.retrieval import Chunk, VectorSearchResult
from ..utils.text import normalize
from .chunker import DEFAULT_CHUNKING_CONFIG, ChunkingConfig, chunk_all
from .embedder import cosine_similarity

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
DEFAULT_MIN_SIMILARITY = 0.3


class StoreState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"


@dataclass(frozen=True)
class VectorStoreEntry:
    chunk: Chunk
    embedding: List[float]


class VectorStore:
    """Process-local vector store over the knowledge-base content.

    Args:
        loader: Content loader providing the units to index.
        embedder: Embedding strategy (MockEmbedder or OpenAIEmbedder).
        chunking: Chunk size limits.
    """

    def __init__(self, loader: ContentLoader, embedder, chunking: ChunkingConfig = DEFAULT_CHUNKING_CONFIG):
        self.loader = loader
        self.embedder = embedder
        self.chunking = chunking
        self._entries: List[VectorStoreEntry] = []
        self._state = StoreState.UNINITIALIZED
        self._lock = asyncio.Lock()
        # Bumped by reset(); a build started under an older value is discarded
        self._generation = 0

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is StoreState.INITIALIZED

    @property
    def size(self) -> int:
        return len(self._entries)

    async def initialize(self) -> None:
        """Chunk and embed all content. A no-op once the store is built.

        Concurrent callers wait on the same lock, so the corpus is embedded
        exactly once.
        """
        if self.is_initialized:
            return

        async with self._lock:
            if self.is_initialized:
                return

            generation = self._generation
            self._state = StoreState.INITIALIZING
            try:
                chunks = self._unique_chunks(chunk_all(self.loader.load_all(), self.chunking))
                embeddings = await self.embedder.embed_many([c.content for c in chunks])
            except BaseException:
                self._state = StoreState.UNINITIALIZED
                raise

            if generation != self._generation:
                logger.info("[VECTOR_STORE] Store was reset during the build, discarding it")
                return

            self._entries = [
                VectorStoreEntry(chunk=chunk, embedding=embedding)
                for chunk, embedding in zip(chunks, embeddings)
            ]
            self._state = StoreState.INITIALIZED

        logger.info(
            f"[VECTOR_STORE] Indexed {len(self._entries)} chunks "
            f"with {getattr(self.embedder, 'name', type(self.embedder).__name__)} embeddings"
        )

    @staticmethod
    def _unique_chunks(chunks: List[Chunk]) -> List[Chunk]:
        seen = set()
        unique = []
        for chunk in chunks:
            if chunk.id in seen:
                logger.warning(f"[VECTOR_STORE] Duplicate chunk id '{chunk.id}' skipped")
                continue
            seen.add(chunk.id)
            unique.append(chunk)
        return unique

    def reset(self) -> None:
        """Empty the store; the next initialize() rebuilds it.

        A build still in flight is discarded when it finishes.
        """
        self._generation += 1
        self._entries = []
        self._state = StoreState.UNINITIALIZED
        logger.info("[VECTOR_STORE] Store reset")

    async def search_similar(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> List[VectorSearchResult]:
        """Return up to top_k chunks with similarity >= min_similarity, best first.

        Ties keep insertion order. Initializes the store on first use.
        """
        if not query or not query.strip() or top_k <= 0:
            return []

        if not self.is_initialized:
            await self.initialize()

        query_embedding = await self.embedder.embed(query.strip())

        scored = []
        for entry in self._entries:
            similarity = cosine_similarity(query_embedding, entry.embedding)
            if similarity >= min_similarity:
                scored.append(VectorSearchResult(chunk=entry.chunk, similarity=similarity))

        # sorted() is stable: equal similarities stay in insertion order
        scored = sorted(scored, key=lambda r: r.similarity, reverse=True)
        return scored[:top_k]

    async def search_by_source_type(
        self,
        query: str,
        source_type: ContentType,
        top_k: int = DEFAULT_TOP_K,
        min_similarity: float = 0.2,
    ) -> List[VectorSearchResult]:
        results = await self.search_similar(query, top_k * 2, min_similarity)
        return [r for r in results if r.chunk.source_type is ContentType(source_type)][:top_k]

    def get_chunk_by_id(self, chunk_id: str) -> Optional[Chunk]:
        for entry in self._entries:
            if entry.chunk.id == chunk_id:
                return entry.chunk
        return None

    def get_chunks_by_source_id(self, source_id: str) -> List[Chunk]:
        return [e.chunk for e in self._entries if e.chunk.source_id == source_id]

    def filter_by_keyword(self, keyword: str) -> List[Chunk]:
        """Chunks whose keyword list contains keyword (case-insensitive substring)."""
        if not keyword or not keyword.strip():
            return []
        wanted = normalize(keyword.strip())
        return [
            e.chunk for e in self._entries
            if any(wanted in normalize(k) for k in e.chunk.metadata.keywords)
        ]

    def stats(self) -> Dict[str, Any]:
        by_source_type = Counter(e.chunk.source_type.value for e in self._entries)
        by_category = Counter(e.chunk.metadata.category for e in self._entries)
        total_length = sum(len(e.chunk.content) for e in self._entries)

        return {
            "state": self._state.value,
            "total_chunks": len(self._entries),
            "by_source_type": dict(by_source_type),
            "by_category": dict(by_category),
            "average_chunk_length": round(total_length / len(self._entries)) if self._entries else 0,
        }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    from .embedder import create_embedder

    store = VectorStore(ContentLoader(), create_embedder())
    asyncio.run(store.initialize())

    info = store.stats()
    print(f"Chunks stored: {info['total_chunks']}")
    print(f"Average chunk length: {info['average_chunk_length']} chars")
    for source_type, count in sorted(info["by_source_type"].items()):
        print(f"  {source_type}: {count}")
