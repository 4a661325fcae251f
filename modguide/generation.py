"""
Answer generation for the moderator assistant.

Both generators take the user message plus the retrieved context and return
the answer text (without the source citation block, which the assistant
appends):

    - TemplateGenerator: no network; answers with the best-ranked chunk.
    - OpenAIChatGenerator: gpt-4o-mini chat completion grounded on the
      retrieved context through the system prompt.
"""

import asyncio
import logging
import os
from typing import List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from . import config
from .errors import ProviderError, RateLimitError
from .models.retrieval import RetrievalResult

logger = logging.getLogger(__name__)

CHAT_MODEL = config.OPENAI_CHAT_MODEL
CHAT_TEMPERATURE = 0.3
CHAT_MAX_TOKENS = 1000

SYSTEM_PROMPT_PATH = os.path.join(os.path.dirname(__file__), "resources", "system_prompt.txt")

NO_CONTEXT_NOTE = (
    "⚠️ Bu soru için ilgili içerik bulunamadı. "
    "Lütfen kullanıcıya üst yetkililere danışmasını öner."
)
EMPTY_COMPLETION_TEXT = "Yanıt oluşturulamadı."


def load_system_prompt() -> str:
    """Read the assistant instructions from the resources directory."""
    with open(SYSTEM_PROMPT_PATH, "r", encoding="utf-8") as f:
        return f.read().strip()


def build_system_prompt(context: str, base_prompt: Optional[str] = None) -> str:
    base = base_prompt if base_prompt is not None else load_system_prompt()
    if not context or not context.strip():
        return f"{base}\n\n## Bağlam Bilgisi\n{NO_CONTEXT_NOTE}"
    return f"{base}\n\n## Bağlam Bilgisi (Yetkili Kılavuzu'ndan)\n{context}"


class TemplateGenerator:
    """Offline generator: restates the best-ranked chunk of the context."""

    name = "template"

    async def generate(self, message: str, retrieval: RetrievalResult, conversation_history=None) -> str:
        if not retrieval.chunks:
            return "Bu konuda yeterli bilgi bulunamadı. Bu durumda üst yetkililere danışılmalıdır."

        top = retrieval.chunks[0]
        return (
            f"**{top.title}** hakkında bilgi:\n\n"
            f"{top.content}\n\n"
            f"💡 Daha fazla bilgi için kılavuzu inceleyebilirsiniz."
        )


class OpenAIChatGenerator:
    """Generates grounded answers with the OpenAI chat completions API.

    Args:
        client: Optional pre-existing AsyncOpenAI client.
        model: Chat model name.
        timeout: Seconds allowed per completion request.
    """

    name = "openai"

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = CHAT_MODEL,
        timeout: float = config.OPENAI_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.model = model
        self.timeout = timeout
        self.system_prompt = load_system_prompt()

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not config.OPENAI_API_KEY:
                raise ProviderError("generation", "OPENAI_API_KEY not found in environment or .env")
            self._client = AsyncOpenAI(
                api_key=config.OPENAI_API_KEY,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
            )
        return self._client

    def build_messages(self, message: str, context: str, conversation_history=None) -> List[dict]:
        messages = [{"role": "system", "content": build_system_prompt(context, self.system_prompt)}]
        for previous in conversation_history or []:
            messages.append({"role": previous.role, "content": previous.content})
        messages.append({"role": "user", "content": message})
        return messages

    async def generate(self, message: str, retrieval: RetrievalResult, conversation_history=None) -> str:
        client = self._get_client()
        messages = self.build_messages(message, retrieval.context, conversation_history)

        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=CHAT_TEMPERATURE,
                    max_tokens=CHAT_MAX_TOKENS,
                ),
                timeout=self.timeout,
            )
        except openai.RateLimitError as e:
            logger.warning(f"[GENERATION] Rate limited by OpenAI: {e}")
            raise RateLimitError("generation", str(e)) from e
        except asyncio.TimeoutError as e:
            logger.error(f"[GENERATION] Chat completion timed out after {self.timeout}s")
            raise ProviderError("generation", f"request timed out after {self.timeout}s") from e
        except (openai.APIError, httpx.HTTPError) as e:
            logger.error(f"[GENERATION] Chat completion failed: {e}")
            raise ProviderError("generation", str(e)) from e

        if not response.choices or not response.choices[0].message.content:
            logger.warning("[GENERATION] Empty completion returned")
            return EMPTY_COMPLETION_TEXT

        content = response.choices[0].message.content
        logger.info(f"[GENERATION] Generated answer ({len(content)} chars) with {self.model}")
        return content


def create_generator(use_mock: Optional[bool] = None):
    """Pick the generation strategy once, at wiring time (see create_embedder)."""
    if use_mock is None:
        use_mock = config.USE_MOCK_AI or not config.OPENAI_API_KEY
        if use_mock:
            logger.warning("[GENERATION] No OpenAI key configured, using templated answers")

    return TemplateGenerator() if use_mock else OpenAIChatGenerator()
