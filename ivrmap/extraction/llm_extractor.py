"""
Optional LLM enrichment: flat node extraction and a short post-call plan.

The deterministic merger and planner are authoritative; this pass only adds
advisory output. ``enrich`` absorbs every failure (missing key, network,
rate limit, malformed JSON) and returns an empty ``Enrichment`` instead.
"""

import logging
from typing import Any, Optional, Sequence

from openai import OpenAI

from ivrmap.config import settings
from ivrmap.prompts.prompt_templates import build_extraction_prompt, build_plan_prompt
from ivrmap.prompts.system_prompts import EXTRACTION_SYSTEM_PROMPT, PLANNER_SYSTEM_PROMPT
from ivrmap.schemas.extraction_schema import CallPlan, Enrichment, ExtractedNode, ExtractedNodes
from ivrmap.schemas.transcript_schema import Utterance

logger = logging.getLogger(__name__)


class LLMExtractor:
    """Calls a chat model in JSON mode and validates the replies with pydantic."""

    def __init__(
        self,
        client: Optional[Any] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> None:
        cfg = settings.model
        self.model = model or cfg.llm_model
        self.temperature = cfg.llm_temperature if temperature is None else temperature
        if client is None and cfg.extraction_enabled and cfg.api_key:
            client = OpenAI(api_key=cfg.api_key)
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def _complete_json(self, system: str, user: str) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system.strip()},
                {"role": "user", "content": user},
            ],
        )
        return response.choices[0].message.content or "{}"

    def extract_nodes(
        self, utterances: Sequence[Utterance], tree_text: Optional[str] = None
    ) -> list[ExtractedNode]:
        raw = self._complete_json(
            EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt(utterances, tree_text)
        )
        return ExtractedNodes.model_validate_json(raw).nodes

    def plan(
        self,
        utterances: Sequence[Utterance],
        tree_text: Optional[str],
        visited: Sequence[Sequence[str]],
        pending: Sequence[Sequence[str]],
    ) -> CallPlan:
        raw = self._complete_json(
            PLANNER_SYSTEM_PROMPT, build_plan_prompt(utterances, tree_text, visited, pending)
        )
        return CallPlan.model_validate_json(raw)

    def enrich(
        self,
        utterances: Sequence[Utterance],
        tree_text: Optional[str],
        visited: Sequence[Sequence[str]],
        pending: Sequence[Sequence[str]],
    ) -> Enrichment:
        """Run both passes, keeping whatever succeeds."""
        if not self.enabled:
            logger.debug("LLM enrichment disabled")
            return Enrichment()

        extracted: list[ExtractedNode] = []
        plan: Optional[CallPlan] = None
        try:
            extracted = self.extract_nodes(utterances, tree_text)
        except Exception as e:
            logger.warning("LLM node extraction skipped: %s", e)
        try:
            plan = self.plan(utterances, tree_text, visited, pending)
        except Exception as e:
            logger.warning("LLM planning skipped: %s", e)
        return Enrichment(extracted=extracted, plan=plan)
