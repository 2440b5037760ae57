from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import openai
from openai import OpenAI

from radiocast.domain.errors import (
    LLMApiError,
    LLMAuthError,
    LLMEmptyResponseError,
    LLMTimeoutError,
)
from radiocast.utils.context import RequestContext

logger = logging.getLogger(__name__)


class ChatClient:
    """Port for a chat-completion backend."""
    def complete(self, system_prompt: str, user_prompt: str, ctx: RequestContext) -> str:
        raise NotImplementedError


@dataclass
class OpenAIChatClient(ChatClient):
    api_key: str
    model: str = "gpt-4.1"
    timeout_seconds: float = 60.0
    max_tokens: int = 4000
    temperature: float = 0.3
    client: Optional[Any] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.client is None:
            self.client = OpenAI(api_key=self.api_key, max_retries=0)

    def complete(self, system_prompt: str, user_prompt: str, ctx: RequestContext) -> str:
        ctx.check()
        call_ctx = ctx.child(self.timeout_seconds)
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=max(call_ctx.timeout(self.timeout_seconds), 1.0),
            )
        except openai.AuthenticationError as e:
            raise LLMAuthError(f"OpenAI rejected the API key: {e}") from e
        except openai.APITimeoutError as e:
            raise LLMTimeoutError(f"OpenAI request timed out after {self.timeout_seconds:.0f}s") from e
        except openai.APIError as e:
            raise LLMApiError(f"OpenAI API error: {e}") from e

        ctx.check()
        if not resp.choices:
            raise LLMEmptyResponseError("no choices returned by OpenAI")
        content = resp.choices[0].message.content or ""
        if not content.strip():
            raise LLMEmptyResponseError("OpenAI returned an empty message")

        logger.info("LLM returned %d characters (model=%s)", len(content), self.model)
        return content
