from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from radiocast.adapters.llm_openai import ChatClient
from radiocast.domain.models import PropagationObservation
from radiocast.domain.raw import SourceBundle
from radiocast.services.prompt_builder import (
    SYSTEM_PROMPT_PATH,
    build_raw_data_prompt,
    load_system_prompt,
)
from radiocast.utils.context import RequestContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prompts:
    system: str
    user: str


@dataclass
class LLMService:
    """Turns an observation into the Markdown narrative. Output is returned verbatim."""
    chat: ChatClient
    system_prompt_path: Path = SYSTEM_PROMPT_PATH

    def build_prompts(self, obs: PropagationObservation, raw: Optional[SourceBundle] = None) -> Prompts:
        return Prompts(
            system=load_system_prompt([self.system_prompt_path]),
            user=build_raw_data_prompt(obs, raw),
        )

    def generate(
        self,
        obs: PropagationObservation,
        raw: Optional[SourceBundle] = None,
        ctx: Optional[RequestContext] = None,
    ) -> str:
        prompts = self.build_prompts(obs, raw)
        logger.info("Requesting report narrative for %s", obs.timestamp.strftime("%Y-%m-%d"))
        return self.complete(prompts, ctx)

    def complete(self, prompts: Prompts, ctx: Optional[RequestContext] = None) -> str:
        return self.chat.complete(prompts.system, prompts.user, ctx or RequestContext.background())
