"""
Moderator assistant: answers questions about the guide and drafts penalty records.

A chat turn runs:

    1. Classify the message (penalty question or general question)
    2. Retrieve context (penalty rules + guide, or all content)
    3. Gate on confidence: low confidence never reaches the generator
    4. Generate the answer and append source citations
    5. Attach a penalty record when one can be derived
"""

import asyncio
import logging
import re
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from . import config
from .content.loader import ContentLoader
from .errors import ValidationError
from .generation import create_generator
from .models.content import ContentType
from .models.retrieval import ConfidenceLevel, RetrievalResult, SourceReference
from .rag.embedder import create_embedder
from .rag.retriever import (
    Retriever,
    determine_confidence_level,
    format_sources_for_citation,
    is_penalty_related_query,
)
from .rag.vector_store import VectorStore
from .utils.text import is_blank

logger = logging.getLogger(__name__)

EMPTY_MESSAGE_RESPONSE = "Lütfen bir soru veya mesaj girin."
LOW_CONFIDENCE_RESPONSE = "Bu konuda yeterli bilgi bulunamadı. Bu durumda üst yetkililere danışılmalıdır."

RECORD_HEADER = "📋 CEZA KAYDI"
RECORD_RULE = "━" * 20
RECORD_DATE_FORMAT = "%d.%m.%Y %H:%M"

_RECORD_RE = re.compile(
    r"📋 CEZA KAYDI[\s\S]*?İhlal:\s*(.+?)[\n\r]"
    r"[\s\S]*?Madde:\s*(.+?)[\n\r]"
    r"[\s\S]*?Süre:\s*(.+?)[\n\r]"
    r"[\s\S]*?Gerekçe:\s*(.+?)[\n\r]"
)


@dataclass
class ChatMessage:
    role: str
    content: str


@dataclass
class PenaltyRecord:
    """A penalty entry ready to paste into the Discord log channel."""
    violation: str
    article: str
    duration: str
    reason: str
    copyable_text: str
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AIResponse:
    response: str
    sources: List[SourceReference] = field(default_factory=list)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    context_used: bool = False
    penalty_record: Optional[PenaltyRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response": self.response,
            "sources": [
                {**asdict(s), "type": ContentType(s.type).value}
                for s in self.sources
            ],
            "confidence": self.confidence.value,
            "context_used": self.context_used,
            "penalty_record": self.penalty_record.to_dict() if self.penalty_record else None,
        }


def create_penalty_record(
    violation: str,
    article: str,
    duration: str,
    reason: str,
    notes: Optional[str] = None,
    date: Optional[datetime] = None,
) -> PenaltyRecord:
    """Build a copyable penalty record.

    Args:
        violation: Violation type, e.g. "ADK İhlali".
        article: Guide article or penalty code, e.g. "ADK-001".
        duration: Sanction duration, e.g. "7 gün".
        reason: Short justification.
        notes: Optional extra note, omitted when blank.
        date: Optional timestamp, rendered as dd.mm.yyyy HH:MM.

    Raises:
        ValidationError: If violation, article, duration or reason is blank
                         (checked in that order).
    """
    values = {
        "violation": violation,
        "article": article,
        "duration": duration,
        "reason": reason,
    }
    for name, value in values.items():
        if is_blank(value):
            raise ValidationError(name)

    violation, article, duration, reason = (str(v).strip() for v in values.values())
    clean_notes = notes.strip() if notes and notes.strip() else None

    lines = [RECORD_HEADER, RECORD_RULE]
    if date is not None:
        lines.append(f"📅 Tarih: {date.strftime(RECORD_DATE_FORMAT)}")
    lines.extend([
        f"⚠️ İhlal: {violation}",
        f"📖 Madde: {article}",
        f"⏱️ Süre: {duration}",
        f"📝 Gerekçe: {reason}",
    ])
    if clean_notes:
        lines.append(f"💡 Not: {clean_notes}")
    lines.append(RECORD_RULE)

    return PenaltyRecord(
        violation=violation,
        article=article,
        duration=duration,
        reason=reason,
        copyable_text="\n".join(lines),
        notes=clean_notes,
    )


def create_simple_penalty_record(violation: str, article: str, duration: str, reason: str) -> PenaltyRecord:
    """Penalty record without date or notes."""
    return create_penalty_record(violation, article, duration, reason)


def extract_penalty_record(text: str) -> Optional[PenaltyRecord]:
    """Parse a "📋 CEZA KAYDI" block out of generated text, if present."""
    match = _RECORD_RE.search(text or "")
    if not match:
        return None

    violation, article, duration, reason = (g.strip() for g in match.groups())
    try:
        return create_penalty_record(violation, article, duration, reason)
    except ValidationError as e:
        logger.debug(f"[ASSISTANT] Ignoring incomplete penalty record block: {e}")
        return None


def is_ai_service_available() -> bool:
    return bool(config.OPENAI_API_KEY)


class Assistant:
    """Chat orchestrator over a Retriever and an answer generator.

    Args:
        loader: Content loader, used to resolve penalty rules.
        retriever: Retriever over the vector store.
        generator: TemplateGenerator or OpenAIChatGenerator.
    """

    def __init__(self, loader: ContentLoader, retriever: Retriever, generator):
        self.loader = loader
        self.retriever = retriever
        self.generator = generator

    @classmethod
    def create(cls, use_mock: Optional[bool] = None, content_dir: Optional[str] = None) -> "Assistant":
        """Wire loader, embedder, vector store, retriever and generator from config."""
        loader = ContentLoader(content_dir)
        store = VectorStore(loader, create_embedder(use_mock))
        return cls(loader, Retriever(store), create_generator(use_mock))

    async def _retrieve(self, message: str) -> RetrievalResult:
        if is_penalty_related_query(message):
            logger.info("[ASSISTANT] Penalty question, using penalty retrieval")
            return await self.retriever.retrieve_penalty_context(message)
        return await self.retriever.retrieve_context(message)

    def _penalty_record_from_rule(self, retrieval: RetrievalResult) -> Optional[PenaltyRecord]:
        for chunk in retrieval.chunks:
            if chunk.source_type is not ContentType.PENALTY:
                continue
            rule = self.loader.get_penalty_by_id(chunk.source_id)
            if rule is None:
                continue
            return create_penalty_record(
                violation=rule.name or rule.title,
                article=rule.code or rule.id,
                duration=rule.duration or "Kılavuza göre belirlenir",
                reason=rule.description or "Kılavuz kurallarına aykırı davranış",
            )
        return None

    async def chat(self, message: str, conversation_history: Optional[List[ChatMessage]] = None) -> AIResponse:
        """Answer one moderator message.

        Args:
            message: The moderator's question.
            conversation_history: Earlier turns, forwarded to the generator.

        Returns:
            AIResponse. Low-confidence retrievals return a fixed referral
            message with no sources instead of a generated answer.
        """
        if not message or not message.strip():
            return AIResponse(response=EMPTY_MESSAGE_RESPONSE)

        message = message.strip()
        retrieval = await self._retrieve(message)
        confidence = determine_confidence_level(retrieval)

        logger.info(
            f"[ASSISTANT] {len(retrieval.chunks)} chunks, "
            f"avg relevance {retrieval.average_relevance:.2f}, confidence {confidence.value}"
        )

        if confidence is ConfidenceLevel.LOW:
            return AIResponse(response=LOW_CONFIDENCE_RESPONSE)

        answer = await self.generator.generate(message, retrieval, conversation_history or [])
        penalty_record = extract_penalty_record(answer) or self._penalty_record_from_rule(retrieval)

        return AIResponse(
            response=answer + format_sources_for_citation(retrieval.sources),
            sources=retrieval.sources,
            confidence=confidence,
            context_used=True,
            penalty_record=penalty_record,
        )


def main():
    """Answer a single question from the command line."""
    if len(sys.argv) < 2:
        print('Usage: python -m modguide.assistant "<soru>"')
        sys.exit(1)

    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s: %(message)s")
    question = " ".join(sys.argv[1:])

    assistant = Assistant.create()
    result = asyncio.run(assistant.chat(question))

    print(f"\n{result.response}")
    print(f"\nGüven: {result.confidence.value}")
    if result.penalty_record:
        print(f"\n{result.penalty_record.copyable_text}")


if __name__ == "__main__":
    main()
