"""OpenAI chat completion service."""

from collections.abc import Sequence
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from .config import config
from .errors import CompletionFailure
from .models import ConversationTurn

logger = config.get_logger(__name__)

GROUNDED_TEMPERATURE = 0.0


class CompletionProvider(Protocol):
    """Anything that can answer a system prompt, history and user turn."""

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ConversationTurn],
        user_turn: str,
    ) -> str: ...


def build_messages(
    system_prompt: str,
    history: Sequence[ConversationTurn],
    user_turn: str,
) -> list[dict[str, str]]:
    """Lay out the chat messages: system, then history, then the user turn.

    Returns:
        Messages in the shape expected by the chat completions API.
    """
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": turn.role, "content": turn.text} for turn in history)
    messages.append({"role": "user", "content": user_turn})
    return messages


class CompletionService:
    """Generates answers with the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        """Initialize the CompletionService.

        Args:
            api_key: OpenAI API key. If None, reads from the environment.
            model: Chat model name. If None, uses config.CHAT_MODEL.
            max_tokens: Completion token limit. If None, uses config.CHAT_MAX_TOKENS.
        """
        default_headers = config.get_api_headers()
        self.client = AsyncOpenAI(
            api_key=api_key or config.get_openai_api_key(),
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
            max_retries=0,
        )
        self.model = model or config.CHAT_MODEL
        self.max_tokens = max_tokens or config.CHAT_MAX_TOKENS

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ConversationTurn],
        user_turn: str,
    ) -> str:
        """Run a deterministic completion for the composed prompt.

        Returns:
            The generated answer text, stripped.

        Raises:
            CompletionFailure: If the provider errors or returns an empty answer.
        """
        messages = build_messages(system_prompt, history, user_turn)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=GROUNDED_TEMPERATURE,
            )
        except OpenAIError as exc:
            logger.exception("Error generating completion")
            raise CompletionFailure(str(exc)) from exc

        if not response.choices:
            msg = "Completion provider returned no choices"
            raise CompletionFailure(msg)
        content = response.choices[0].message.content
        if not content or not content.strip():
            msg = "Completion provider returned an empty answer"
            raise CompletionFailure(msg)
        return content.strip()
