"""Result types produced by chunking, vector search, RAG retrieval and keyword search."""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .content import ContentType


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ChunkMetadata:
    title: str
    category: str
    keywords: Tuple[str, ...]
    chunk_index: int
    total_chunks: int
    subcategory: Optional[str] = None


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of one ContentUnit; the unit of vector retrieval.

    Attributes:
        id: "{source_id}-chunk-{index}", unique across the store.
        source_id: Id of the originating ContentUnit.
        source_type: ContentType of the originating unit.
        content: Chunk text.
        metadata: Title, category, keywords and position within the source.
    """
    id: str
    source_id: str
    source_type: ContentType
    content: str
    metadata: ChunkMetadata


@dataclass(frozen=True)
class VectorSearchResult:
    chunk: Chunk
    similarity: float


@dataclass(frozen=True)
class RetrievedChunk:
    id: str
    content: str
    source_type: ContentType
    source_id: str
    title: str
    category: str
    relevance_score: float
    keywords: Tuple[str, ...] = ()
    subcategory: Optional[str] = None

    @classmethod
    def from_search_result(cls, result: VectorSearchResult) -> "RetrievedChunk":
        chunk = result.chunk
        return cls(
            id=chunk.id,
            content=chunk.content,
            source_type=chunk.source_type,
            source_id=chunk.source_id,
            title=chunk.metadata.title,
            category=chunk.metadata.category,
            relevance_score=result.similarity,
            keywords=chunk.metadata.keywords,
            subcategory=chunk.metadata.subcategory,
        )


@dataclass(frozen=True)
class SourceReference:
    """Citation for one ContentUnit that contributed chunks to an answer."""
    id: str
    title: str
    type: ContentType
    category: str
    relevance_score: float
    subcategory: Optional[str] = None


@dataclass
class RetrievalResult:
    chunks: List[RetrievedChunk] = field(default_factory=list)
    context: str = ""
    sources: List[SourceReference] = field(default_factory=list)
    average_relevance: float = 0.0
    query: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class SearchResult:
    """A keyword search hit, linked to the page that shows the unit."""
    id: str
    type: ContentType
    title: str
    excerpt: str
    category: str
    relevance_score: float
    href: str

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


def _jsonable(value: Any) -> Any:
    """Convert enums and tuples left by asdict() into JSON-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
