"""Semantic template classifier via Ollama, with a local keyword fallback."""

import json
import logging

import ollama

from resolver.agents.client import chat_structured
from resolver.agents.health import ServiceHealth
from resolver.agents.models import (
    AdapterFailure,
    ClassifierResponse,
    ClassifierResult,
    ClassifierVerdict,
)
from resolver.core.config import EngineConfig, FallbackRule
from resolver.core.templates import TemplateDefinition

logger = logging.getLogger(__name__)

SERVICE = "semantic-classifier"

FALLBACK_MATCH_CONFIDENCE = 0.8
FALLBACK_DEFAULT_CONFIDENCE = 0.5

_SYSTEM_PROMPT = (
    "You are an expert document classifier specializing in police and "
    "administrative letters. Decide which of the available templates the "
    "document matches. Respond ONLY with the requested JSON."
)


# ── Prompt Builder ───────────────────────────────────────────────────


def build_classifier_prompt(
    text: str, candidates: list[TemplateDefinition], excerpt_chars: int
) -> str:
    """Build the classification prompt from a text excerpt and template descriptors."""
    descriptors = json.dumps([t.descriptor() for t in candidates], indent=2)
    excerpt = text[:excerpt_chars]

    return f"""/no_think
Analyze the following document text and determine which template it best matches.

DOCUMENT TEXT:
{excerpt}

AVAILABLE TEMPLATES:
{descriptors}

Respond with JSON only: {{"template_id": "exact id from the list above", "confidence": 0.0-1.0, "reasoning": "..."}}"""


# ── Classifier ───────────────────────────────────────────────────────


class SemanticClassifier:
    """Adapter around the external template classifier."""

    def __init__(
        self,
        client: ollama.AsyncClient,
        config: EngineConfig,
        health: ServiceHealth | None = None,
    ):
        self._client = client
        self._config = config
        self.health = health or ServiceHealth(SERVICE, config.health_recheck_seconds)

    async def classify(
        self, text: str, candidates: list[TemplateDefinition]
    ) -> ClassifierResult:
        """Single external classification; never raises."""
        if not candidates:
            return AdapterFailure(service=SERVICE, reason="no candidate templates")

        result = await chat_structured(
            self._client,
            service=SERVICE,
            model=self._config.classifier_model,
            system=_SYSTEM_PROMPT,
            prompt=build_classifier_prompt(text, candidates, self._config.excerpt_chars),
            output_model=ClassifierResponse,
            config=self._config,
            health=self.health,
        )
        if isinstance(result, AdapterFailure):
            return result

        if result.template_id not in {t.id for t in candidates}:
            logger.warning("%s named unknown template '%s'", SERVICE, result.template_id)
            return AdapterFailure(service=SERVICE, reason=f"unknown template '{result.template_id}'")

        return ClassifierVerdict(
            template_id=result.template_id,
            confidence=result.confidence,
            reasoning=result.reasoning,
            source="external",
        )

    async def classify_with_fallback(
        self, text: str, candidates: list[TemplateDefinition]
    ) -> ClassifierVerdict | None:
        """External verdict if available, otherwise the local keyword verdict."""
        result = await self.classify(text, candidates)
        if isinstance(result, ClassifierVerdict):
            return result
        return fallback_classify(text, candidates, self._config.fallback_rules)


# ── Local Fallback ───────────────────────────────────────────────────


def fallback_classify(
    text: str,
    candidates: list[TemplateDefinition],
    rules: list[FallbackRule],
) -> ClassifierVerdict | None:
    """Keyword-rule classification. First matching rule wins."""
    if not candidates:
        return None

    text_lower = text.lower()
    candidate_ids = {t.id for t in candidates}

    for rule in rules:
        if rule.template_id not in candidate_ids:
            continue
        hit = next((k for k in rule.keywords if k.lower() in text_lower), None)
        if hit is not None:
            return ClassifierVerdict(
                template_id=rule.template_id,
                confidence=FALLBACK_MATCH_CONFIDENCE,
                reasoning=f"keyword '{hit}' matched {rule.template_id}",
                source="fallback",
            )

    return ClassifierVerdict(
        template_id=candidates[0].id,
        confidence=FALLBACK_DEFAULT_CONFIDENCE,
        reasoning=f"no keyword rule matched, defaulting to {candidates[0].id}",
        source="fallback",
    )
