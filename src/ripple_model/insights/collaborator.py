"""
Insight collaborator – narrative summaries of a simulation outcome
==================================================================

The collaborator turns a :class:`SimulationSummary` into prose.  Text comes
from an external language-model service when one is reachable; otherwise, or
on any malformed/erroneous response, the deterministic templates in
:mod:`ripple_model.insights.fallback` are used.  Failure here never affects
the simulation itself.

The three kinds (policy, equity, environmental) are independent and are
issued concurrently by :meth:`InsightCollaborator.summarize_all`.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, Optional

import requests

from ripple_model.baseline import BaselineMetrics
from ripple_model.config import InsightConfig
from ripple_model.entities import PolicySettings
from ripple_model.errors import CollaboratorError
from ripple_model.insights.fallback import (
    fallback_environmental_text,
    fallback_equity_text,
    fallback_policy_text,
)
from ripple_model.insights.prompts import environmental_prompt, equity_prompt, policy_prompt
from ripple_model.model.simulation import SimulationSummary

logger = logging.getLogger(__name__)


class InsightKind(str, Enum):
    POLICY = "policy"
    EQUITY = "equity"
    ENVIRONMENTAL = "environmental"


PROMPTS: Dict[InsightKind, Callable[[SimulationSummary, BaselineMetrics, PolicySettings], str]] = {
    InsightKind.POLICY: policy_prompt,
    InsightKind.EQUITY: equity_prompt,
    InsightKind.ENVIRONMENTAL: environmental_prompt,
}

FALLBACKS: Dict[InsightKind, Callable[[SimulationSummary, BaselineMetrics], str]] = {
    InsightKind.POLICY: fallback_policy_text,
    InsightKind.EQUITY: fallback_equity_text,
    InsightKind.ENVIRONMENTAL: fallback_environmental_text,
}

MAX_OUTPUT_TOKENS: Dict[InsightKind, int] = {
    InsightKind.POLICY: 1024,
    InsightKind.EQUITY: 512,
    InsightKind.ENVIRONMENTAL: 256,
}


class InsightService(ABC):
    """Generates free text for a prompt or raises :class:`CollaboratorError`."""

    @abstractmethod
    def generate(self, prompt: str, *, max_output_tokens: int = 512) -> str:
        raise NotImplementedError


class GeminiInsightService(InsightService):
    """Client for the Generative Language ``generateContent`` endpoint."""

    def __init__(self, config: Optional[InsightConfig] = None, api_key: Optional[str] = None) -> None:
        self.config = config or InsightConfig()
        self.api_key = api_key if api_key is not None else os.environ.get(self.config.api_key_env)

    def _request_body(self, prompt: str, max_output_tokens: int) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": max_output_tokens,
            },
        }

    def generate(self, prompt: str, *, max_output_tokens: int = 512) -> str:
        if not self.api_key:
            raise CollaboratorError(f"No API key configured ({self.config.api_key_env})")

        try:
            resp = requests.post(
                self.config.api_url,
                params={"key": self.api_key},
                json=self._request_body(prompt, max_output_tokens),
                timeout=self.config.timeout_sec,
            )
        except requests.exceptions.RequestException as exc:
            raise CollaboratorError(f"Insight service unreachable: {exc}") from exc

        if not resp.ok:
            raise CollaboratorError(f"Insight service error: {resp.status_code} {resp.reason}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise CollaboratorError("Insight service returned invalid JSON") from exc

        return extract_text(data)


def extract_text(data: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise :class:`CollaboratorError`."""

    if not isinstance(data, dict):
        raise CollaboratorError("Unexpected response format from insight service")
    if data.get("error"):
        error = data["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise CollaboratorError(message or "Insight service error")
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise CollaboratorError("Unexpected response format from insight service") from exc
    if not isinstance(text, str) or not text.strip():
        raise CollaboratorError("Insight service returned empty text")
    return text.strip()


class InsightCollaborator:
    """Narrative summaries with an always-available offline fallback."""

    def __init__(
        self,
        service: Optional[InsightService] = None,
        config: Optional[InsightConfig] = None,
    ) -> None:
        self.config = config or InsightConfig()
        self.service = service if service is not None else GeminiInsightService(self.config)

    def summarize(
        self,
        kind: InsightKind,
        summary: SimulationSummary,
        baseline: BaselineMetrics,
        policy: PolicySettings,
    ) -> str:
        kind = InsightKind(kind)
        prompt = PROMPTS[kind](summary, baseline, policy)
        try:
            return self.service.generate(prompt, max_output_tokens=MAX_OUTPUT_TOKENS[kind])
        except CollaboratorError as exc:
            logger.warning("Insight service failed for %s insights, using local summary: %s", kind.value, exc)
            return FALLBACKS[kind](summary, baseline)

    def summarize_all(
        self,
        summary: SimulationSummary,
        baseline: BaselineMetrics,
        policy: PolicySettings,
    ) -> Dict[InsightKind, str]:
        """Fan out all three kinds concurrently; each one fails over on its own."""

        with ThreadPoolExecutor(max_workers=self.config.max_workers, thread_name_prefix="ripple-insight") as pool:
            futures = {kind: pool.submit(self.summarize, kind, summary, baseline, policy) for kind in InsightKind}

        results: Dict[InsightKind, str] = {}
        for kind, future in futures.items():
            try:
                results[kind] = future.result()
            except Exception as exc:  # one broken kind must not take down the others
                logger.error("❌ %s insight generation failed: %s", kind.value, exc)
                results[kind] = FALLBACKS[kind](summary, baseline)
        return results


__all__ = [
    "InsightKind",
    "InsightService",
    "GeminiInsightService",
    "InsightCollaborator",
    "extract_text",
]
