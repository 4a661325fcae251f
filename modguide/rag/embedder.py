"""
Embedder module: text -> fixed-length unit vector.

Two strategies share one async interface and are picked once, when the
knowledge base is wired up:

    - MockEmbedder: deterministic hashed bag-of-stems vectors. No network,
      same text always gives the same vector. Used in tests and whenever
      no OpenAI key is configured.
    - OpenAIEmbedder: text-embedding-3-small through AsyncOpenAI. Failures
      and timeouts raise ProviderError/RateLimitError; they are never
      replaced with mock vectors.
"""

import asyncio
import hashlib
import logging
import math
from collections import Counter
from typing import Dict, List, Optional, Sequence

import httpx
import openai
from openai import AsyncOpenAI

from .. import config
from ..errors import DimensionMismatchError, ProviderError, RateLimitError
from ..utils.text import tokenize

logger = logging.getLogger(__name__)

EMBEDDING_MODEL = config.OPENAI_EMBEDDING_MODEL
EMBEDDING_DIMENSIONS = config.EMBEDDING_DIMENSIONS

# The OpenAI API accepts up to 2048 inputs per request; stay well below it
EMBEDDING_BATCH_SIZE = 100

# Turkish is agglutinative: "cezası", "cezalar" and "ceza" share a 4-letter stem
_STEM_LENGTH = 4
# Weight of the feature that hashes the whole raw text; keeps distinct texts apart
_WHOLE_TEXT_WEIGHT = 0.5


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, clamped into [0, 1].

    Raises:
        DimensionMismatchError: If the vectors have different lengths.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    if list(a) == list(b):
        return 1.0 if any(a) else 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    magnitude = math.sqrt(norm_a) * math.sqrt(norm_b)
    if magnitude == 0.0 or dot == 0.0:
        return 0.0

    return max(0.0, min(1.0, dot / magnitude))


def normalize_vector(values: Sequence[float]) -> List[float]:
    norm = math.sqrt(sum(v * v for v in values))
    if norm == 0.0:
        return [0.0] * len(values)
    return [v / norm for v in values]


class MockEmbedder:
    """Deterministic embedder for tests and offline use.

    Each word contributes its 4-letter stem, counted per occurrence, to a
    hashed bucket; the raw text contributes one extra lightly weighted
    bucket. All weights are non-negative, so similarities stay in [0, 1].
    """

    name = "mock"

    def __init__(self, dimensions: int = EMBEDDING_DIMENSIONS):
        self.dimensions = dimensions

    def _bucket(self, feature: str) -> int:
        digest = hashlib.sha256(feature.encode("utf-8", errors="ignore")).digest()
        return int.from_bytes(digest[:4], "big") % self.dimensions

    def _features(self, text: str) -> Dict[str, float]:
        features: Counter = Counter()
        for token in tokenize(text):
            features[f"w:{token[:_STEM_LENGTH]}"] += 1.0
        features[f"t:{text}"] += _WHOLE_TEXT_WEIGHT
        return features

    def embed_sync(self, text: str) -> List[float]:
        values = [0.0] * self.dimensions
        for feature, weight in self._features(text).items():
            values[self._bucket(feature)] += weight
        return normalize_vector(values)

    async def embed(self, text: str) -> List[float]:
        return self.embed_sync(text)

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        return [self.embed_sync(t) for t in texts]


class OpenAIEmbedder:
    """Embeds text with the OpenAI embeddings API.

    Args:
        client: Optional pre-existing AsyncOpenAI client.
        model: Embedding model name.
        dimensions: Requested vector size.
        timeout: Seconds allowed per API request.
    """

    name = "openai"

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        timeout: float = config.OPENAI_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not config.OPENAI_API_KEY:
                raise ProviderError("embedding", "OPENAI_API_KEY not found in environment or .env")
            self._client = AsyncOpenAI(
                api_key=config.OPENAI_API_KEY,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
            )
        return self._client

    async def _create(self, inputs: List[str]) -> List[List[float]]:
        client = self._get_client()
        try:
            response = await asyncio.wait_for(
                client.embeddings.create(
                    model=self.model,
                    input=inputs,
                    dimensions=self.dimensions,
                ),
                timeout=self.timeout,
            )
        except openai.RateLimitError as e:
            logger.warning(f"[EMBEDDER] Rate limited by OpenAI: {e}")
            raise RateLimitError("embedding", str(e)) from e
        except asyncio.TimeoutError as e:
            logger.error(f"[EMBEDDER] Embedding request timed out after {self.timeout}s")
            raise ProviderError("embedding", f"request timed out after {self.timeout}s") from e
        except (openai.APIError, httpx.HTTPError) as e:
            logger.error(f"[EMBEDDER] Embedding request failed: {e}")
            raise ProviderError("embedding", str(e)) from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(inputs):
            raise ProviderError("embedding", f"expected {len(inputs)} embeddings, got {len(data)}")

        vectors = []
        for item in data:
            if len(item.embedding) != self.dimensions:
                raise ProviderError(
                    "embedding",
                    f"expected {self.dimensions} dimensions, got {len(item.embedding)}",
                )
            vectors.append(normalize_vector(item.embedding))
        return vectors

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ProviderError("embedding", "cannot embed empty text")
        return (await self._create([text.strip()]))[0]

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        if any(not t or not t.strip() for t in texts):
            raise ProviderError("embedding", "cannot embed empty text")

        vectors: List[List[float]] = []
        for start in range(0, len(texts), EMBEDDING_BATCH_SIZE):
            batch = [t.strip() for t in texts[start:start + EMBEDDING_BATCH_SIZE]]
            vectors.extend(await self._create(batch))

        logger.info(
            f"[EMBEDDER] Generated {len(vectors)} embeddings "
            f"({self.model}, {self.dimensions}d)"
        )
        return vectors


def create_embedder(use_mock: Optional[bool] = None):
    """Pick the embedding strategy once, at wiring time.

    Args:
        use_mock: True forces the mock, False forces OpenAI. None uses OpenAI
                  when an API key is configured (and USE_MOCK_AI is off).
    """
    if use_mock is None:
        use_mock = config.USE_MOCK_AI or not config.OPENAI_API_KEY
        if use_mock:
            logger.warning("[EMBEDDER] No OpenAI key configured, using deterministic mock embeddings")

    return MockEmbedder() if use_mock else OpenAIEmbedder()
