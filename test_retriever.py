"""
Tests for RAG context retrieval, confidence levels and citations
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from modguide.models.content import ContentType
from modguide.models.retrieval import (
    ConfidenceLevel,
    RetrievalResult,
    RetrievedChunk,
    SourceReference,
)
from modguide.rag.retriever import (
    Retriever,
    build_context_text,
    determine_confidence_level,
    extract_source_references,
    format_sources_for_citation,
    is_penalty_related_query,
)

ADK_QUERY = "adk cezası kaç gün?"


def _chunk(source_id, score, title="Başlık", content="İçerik", source_type=ContentType.PENALTY, index=0):
    return RetrievedChunk(
        id=f"{source_id}-chunk-{index}",
        content=content,
        source_type=source_type,
        source_id=source_id,
        title=title,
        category="yazili",
        relevance_score=score,
    )


def _result(*scores):
    chunks = [_chunk(f"s-{i}", s) for i, s in enumerate(scores)]
    average = sum(scores) / len(scores) if scores else 0.0
    return RetrievalResult(chunks=chunks, average_relevance=average)


# ----------------------------------------------------------------------
# Pure helpers
# ----------------------------------------------------------------------

@pytest.mark.parametrize("message, expected", [
    ("ADK cezası kaç gün?", True),
    ("Hakaret eden üyeye ne yapılır", True),
    ("BLACKLIST nedir", True),
    ("UYARI ne zaman verilir", True),
    ("KALICI olarak atılır mı", True),
    ("Sunucu etkinlik takvimi", False),
    ("", False),
])
def test_is_penalty_related_query(message, expected):
    assert is_penalty_related_query(message) is expected


def test_confidence_levels():
    assert determine_confidence_level(RetrievalResult()) is ConfidenceLevel.LOW
    assert determine_confidence_level(_result(0.9, 0.7)) is ConfidenceLevel.HIGH
    assert determine_confidence_level(_result(0.7)) is ConfidenceLevel.HIGH
    assert determine_confidence_level(_result(0.5, 0.4)) is ConfidenceLevel.MEDIUM
    assert determine_confidence_level(_result(0.4)) is ConfidenceLevel.MEDIUM
    assert determine_confidence_level(_result(0.35)) is ConfidenceLevel.LOW


def test_zero_chunks_is_low_even_with_high_average():
    assert determine_confidence_level(RetrievalResult(average_relevance=0.95)) is ConfidenceLevel.LOW


def test_format_sources_for_citation():
    assert format_sources_for_citation([]) == ""

    sources = [
        SourceReference(id="penalty-004", title="ADK-001 - ADK İhlali", type=ContentType.PENALTY,
                        category="yazili", relevance_score=0.854),
        SourceReference(id="guide-002", title="Yazılı Kanal Kuralları", type=ContentType.GUIDE,
                        category="kurallar", relevance_score=0.5),
    ]
    text = format_sources_for_citation(sources)

    assert text.startswith("\n\n📚 Kaynaklar:\n")
    assert "[1] Ceza: ADK-001 - ADK İhlali (İlgililik: %85)" in text
    assert "[2] Kılavuz: Yazılı Kanal Kuralları (İlgililik: %50)" in text


def test_source_references_deduplicate_with_max_score():
    chunks = [
        _chunk("guide-1", 0.4, index=0, source_type=ContentType.GUIDE),
        _chunk("penalty-1", 0.6),
        _chunk("guide-1", 0.8, index=1, source_type=ContentType.GUIDE),
    ]
    sources = extract_source_references(chunks)

    assert [s.id for s in sources] == ["guide-1", "penalty-1"]
    assert sources[0].relevance_score == 0.8


def test_context_respects_character_budget():
    chunks = [_chunk(f"s-{i}", 0.9, title=f"T{i}", content="x" * 100) for i in range(5)]
    context = build_context_text(chunks, max_tokens=60)

    assert len(context) <= 60 * 4
    assert context.startswith("[T0]\n")
    assert "[T2]" not in context


# ----------------------------------------------------------------------
# Retriever against a store
# ----------------------------------------------------------------------

def test_blank_query_does_not_touch_store():
    store = MagicMock()
    store.search_similar = AsyncMock()
    retriever = Retriever(store)

    result = asyncio.run(retriever.retrieve_context("   "))
    penalty_result = asyncio.run(retriever.retrieve_penalty_context(""))

    assert result.chunks == [] and result.context == "" and result.sources == []
    assert result.average_relevance == 0.0
    assert penalty_result.chunks == []
    store.search_similar.assert_not_awaited()


def test_retrieve_context_over_fetches_and_filters(adk_store):
    adk_store.search_similar = AsyncMock(wraps=adk_store.search_similar)
    retriever = Retriever(adk_store)

    result = asyncio.run(retriever.retrieve_context(ADK_QUERY, top_k=3, content_types=[ContentType.GUIDE]))

    assert adk_store.search_similar.await_args.args[1] == 6
    assert all(c.source_type is ContentType.GUIDE for c in result.chunks)


def test_adk_penalty_context(adk_retriever):
    result = asyncio.run(adk_retriever.retrieve_penalty_context(ADK_QUERY))

    assert result.chunks
    assert result.chunks[0].source_id == "penalty-001"
    assert result.sources[0].id == "penalty-001"
    assert "[ADK-001 - ADK İhlali]" in result.context
    assert "7 gün" in result.context
    assert result.query == ADK_QUERY
    assert 0.3 <= result.average_relevance <= 1.0
    scores = [c.relevance_score for c in result.chunks]
    assert scores == sorted(scores, reverse=True)


def test_retrieval_invariants(bundled_store):
    retriever = Retriever(bundled_store)
    result = asyncio.run(retriever.retrieve_context("hakaret eden üyeye mute", top_k=4, min_relevance=0.1))

    assert len(result.chunks) <= 4
    assert all(0.1 <= c.relevance_score <= 1.0 for c in result.chunks)
    source_ids = [s.id for s in result.sources]
    assert len(source_ids) == len(set(source_ids))
    assert set(source_ids) == {c.source_id for c in result.chunks}
    if result.chunks:
        expected = sum(c.relevance_score for c in result.chunks) / len(result.chunks)
        assert result.average_relevance == pytest.approx(expected)


def test_retrieval_is_deterministic(bundled_store):
    retriever = Retriever(bundled_store)
    first = asyncio.run(retriever.retrieve_context("blacklist nedir", min_relevance=0.1))
    second = asyncio.run(retriever.retrieve_context("blacklist nedir", min_relevance=0.1))
    assert first.to_dict() == second.to_dict()


def test_typed_helpers(bundled_store):
    retriever = Retriever(bundled_store)

    commands = asyncio.run(retriever.retrieve_command_context("mute komutu", min_relevance=0.0))
    procedures = asyncio.run(retriever.retrieve_procedure_context("ceza verme prosedürü", min_relevance=0.0))

    assert all(c.source_type is ContentType.COMMAND for c in commands.chunks)
    assert all(c.source_type is ContentType.PROCEDURE for c in procedures.chunks)


def test_full_source_content_and_readiness(adk_retriever):
    assert not adk_retriever.is_ready()
    asyncio.run(adk_retriever.initialize())
    assert adk_retriever.is_ready()

    content = adk_retriever.get_full_source_content("penalty-001")
    assert content.startswith("Ceza: ADK İhlali (ADK-001)")
    assert adk_retriever.get_full_source_content("missing") is None


def test_result_to_dict_is_json_friendly(adk_retriever):
    data = asyncio.run(adk_retriever.retrieve_penalty_context(ADK_QUERY)).to_dict()
    assert data["chunks"][0]["source_type"] == "penalty"
    assert data["sources"][0]["type"] == "penalty"
    assert isinstance(data["chunks"][0]["keywords"], list)
