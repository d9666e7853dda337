"""Entity and key-phrase analysis via Ollama, with a regex fallback."""

import logging
import re

import ollama

from resolver.agents.client import chat_structured
from resolver.agents.health import ServiceHealth
from resolver.agents.models import (
    AdapterFailure,
    AnalysisResult,
    EntityAnalysisResponse,
    Sentiment,
    TextAnalysis,
)
from resolver.core.config import EngineConfig
from resolver.parsers.models import Entity

logger = logging.getLogger(__name__)

SERVICE = "entity-analyzer"

_DATE_RE = re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}")
_NAME_RE = re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\b")

FALLBACK_DATE_CONFIDENCE = 0.8
FALLBACK_NAME_CONFIDENCE = 0.7
MAX_KEY_PHRASES = 10
MIN_KEY_PHRASE_LENGTH = 5

_SYSTEM_PROMPT = (
    "You are a named-entity recognizer for administrative documents. "
    "List the people, dates, organizations and locations mentioned, the "
    "most important key phrases, and the overall sentiment. "
    "Respond ONLY with the requested JSON."
)


def build_entity_prompt(text: str, excerpt_chars: int) -> str:
    return f"""/no_think
Extract entities and key phrases from the following document.

Entity categories: Person, DateTime, Organization, Location, Quantity, Other.
Copy entity text verbatim from the document.

DOCUMENT TEXT:
{text[:excerpt_chars]}"""


# ── Analyzer ─────────────────────────────────────────────────────────


class EntityAnalyzer:
    """Adapter around the external entity/keyphrase service."""

    def __init__(
        self,
        client: ollama.AsyncClient,
        config: EngineConfig,
        health: ServiceHealth | None = None,
    ):
        self._client = client
        self._config = config
        self.health = health or ServiceHealth(SERVICE, config.health_recheck_seconds)

    async def analyze_text(self, text: str) -> AnalysisResult:
        """Single external analysis; never raises."""
        if not text.strip():
            return AdapterFailure(service=SERVICE, reason="empty text")

        result = await chat_structured(
            self._client,
            service=SERVICE,
            model=self._config.entity_model,
            system=_SYSTEM_PROMPT,
            prompt=build_entity_prompt(text, self._config.excerpt_chars),
            output_model=EntityAnalysisResponse,
            config=self._config,
            health=self.health,
        )
        if isinstance(result, AdapterFailure):
            return result

        return TextAnalysis(
            entities=[
                Entity(text=e.text, category=e.category, confidence=e.confidence)
                for e in result.entities
                if e.text.strip()
            ],
            key_phrases=[p for p in result.key_phrases if p.strip()],
            sentiment=result.sentiment,
            source="external",
        )

    async def analyze_with_fallback(self, text: str) -> TextAnalysis:
        """External analysis if available, otherwise the regex analysis."""
        result = await self.analyze_text(text)
        if isinstance(result, TextAnalysis):
            return result
        return fallback_analyze(text)


# ── Local Fallback ───────────────────────────────────────────────────


def fallback_analyze(text: str) -> TextAnalysis:
    """Dates and two-word capitalized names by regex; long words as key phrases."""
    entities = [
        Entity(text=m.group(0), category="DateTime", confidence=FALLBACK_DATE_CONFIDENCE)
        for m in _DATE_RE.finditer(text)
    ]
    entities.extend(
        Entity(text=m.group(0), category="Person", confidence=FALLBACK_NAME_CONFIDENCE)
        for m in _NAME_RE.finditer(text)
    )

    words = text.lower().split()
    key_phrases = [w for w in words if len(w) >= MIN_KEY_PHRASE_LENGTH][:MAX_KEY_PHRASES]

    return TextAnalysis(
        entities=entities,
        key_phrases=key_phrases,
        sentiment=Sentiment(label="neutral", confidence=0.5),
        source="fallback",
    )
