"""Template resolution pipeline: normalize, score, classify, extract, explain."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from resolver.agents.classifier import SemanticClassifier
from resolver.agents.client import make_client
from resolver.agents.entities import EntityAnalyzer
from resolver.core.audit import (
    ANALYSIS_COMPLETE,
    ANALYSIS_ERROR,
    ANALYSIS_START,
    AuditEvent,
    AuditSink,
    emit,
)
from resolver.core.config import EngineConfig
from resolver.core.templates import TemplateRegistry
from resolver.extraction.cascade import extract_fields
from resolver.parsers.normalizer import normalize
from resolver.pipeline.models import TemplateResolution
from resolver.pipeline.reasoning import build_reasoning, overall_confidence
from resolver.scoring.combiner import combine
from resolver.scoring.pattern_scorer import normalize_scores, score_templates

logger = logging.getLogger(__name__)


# ── Resolver ─────────────────────────────────────────────────────────


class TemplateResolver:
    """Resolves documents against the templates of one registry.

    Holds no per-document state; one instance can serve many concurrent
    resolutions.
    """

    def __init__(
        self,
        registry: TemplateRegistry,
        classifier: SemanticClassifier,
        analyzer: EntityAnalyzer,
        config: Optional[EngineConfig] = None,
        audit: Optional[AuditSink] = None,
    ):
        self._registry = registry
        self._classifier = classifier
        self._analyzer = analyzer
        self._config = config or EngineConfig()
        self._audit = audit

    @classmethod
    def from_config(
        cls,
        registry: TemplateRegistry,
        config: EngineConfig,
        audit: Optional[AuditSink] = None,
    ) -> "TemplateResolver":
        """Wire both adapters to one Ollama client built from config."""
        client = make_client(config)
        return cls(
            registry,
            SemanticClassifier(client, config),
            EntityAnalyzer(client, config),
            config=config,
            audit=audit,
        )

    # ── Single Document ──────────────────────────────────────

    async def resolve_async(
        self,
        data: Any,
        resource_id: Optional[str] = None,
        user_id: str = "system",
    ) -> TemplateResolution:
        """Resolve one document. Only registry failures propagate."""
        resource_id = resource_id or uuid.uuid4().hex
        signals = normalize(data)

        self._emit(
            ANALYSIS_START,
            resource_id,
            user_id,
            {
                "text_length": len(signals.text),
                "structured": signals.structured,
                "field_names": signals.field_names[:20],
            },
        )

        try:
            resolution = await self._resolve(signals, resource_id)
        except Exception as exc:
            logger.error("Resolution of %s failed: %s", resource_id, exc)
            self._emit(ANALYSIS_ERROR, resource_id, user_id, {"error": str(exc)})
            raise

        self._emit(
            ANALYSIS_COMPLETE,
            resource_id,
            user_id,
            {
                "template": resolution.template.id if resolution.template else None,
                "confidence": round(resolution.confidence, 4),
                "field_count": len(resolution.fields),
                "degraded": resolution.degraded,
            },
        )
        return resolution

    def resolve(
        self,
        data: Any,
        resource_id: Optional[str] = None,
        user_id: str = "system",
    ) -> TemplateResolution:
        """Blocking wrapper around resolve_async for one-off calls."""
        return asyncio.run(self.resolve_async(data, resource_id, user_id))

    async def _resolve(self, signals, resource_id: str) -> TemplateResolution:
        templates = self._registry.list_templates()
        cfg = self._config

        # Both adapters resolve to values, never exceptions
        verdict, analysis = await asyncio.gather(
            self._classifier.classify_with_fallback(signals.text, templates),
            self._analyzer.analyze_with_fallback(signals.text),
        )

        entities = [*signals.entities, *analysis.entities]
        analysis = analysis.model_copy(update={"entities": entities})

        raw_scores = score_templates(
            signals.text, entities, analysis.key_phrases, signals.field_names, templates
        )
        normalized = normalize_scores(raw_scores)
        decision = combine(templates, raw_scores, normalized, verdict)

        if decision.template is None:
            fields = []
            confidence = 0.0
        else:
            fields = extract_fields(
                decision.template,
                signals.text,
                signals.lines,
                entities,
                signals.key_value_pairs,
                day_first=cfg.day_first,
            )
            confidence = overall_confidence(signals.base_confidence, decision.confidence, fields)

        reasoning = build_reasoning(
            decision.template,
            analysis,
            raw_scores,
            {t.id: t.name for t in templates},
            verdict,
        )
        degraded = analysis.source == "fallback" or (
            verdict is not None and verdict.source == "fallback"
        )
        if degraded:
            logger.warning("Resolution of %s used local fallback analysis", resource_id)

        return TemplateResolution(
            resource_id=resource_id,
            template=decision.template,
            confidence=confidence,
            template_confidence=decision.confidence,
            reasoning=reasoning,
            fields=fields,
            per_template_scores=decision.per_template_scores,
            degraded=degraded,
            resolved_at=datetime.now(timezone.utc),
        )

    def _emit(self, action: str, resource_id: str, user_id: str, details: dict) -> None:
        emit(
            self._audit,
            AuditEvent(action=action, resource_id=resource_id, user_id=user_id, details=details),
        )

    # ── Many Documents ───────────────────────────────────────

    async def resolve_many(
        self, documents: dict[str, Any], user_id: str = "system"
    ) -> dict[str, TemplateResolution | Exception]:
        """Resolve documents concurrently; a failure stays with its document."""
        ids = list(documents)
        outcomes = await asyncio.gather(
            *(self.resolve_async(documents[rid], rid, user_id) for rid in ids),
            return_exceptions=True,
        )
        return dict(zip(ids, outcomes))


# ── Batch Runner ─────────────────────────────────────────────────────


def run_resolution(
    resolver: TemplateResolver, documents: dict[str, Any]
) -> tuple[dict[str, TemplateResolution], dict]:
    """Resolve a batch and return (resolutions by id, summary stats)."""
    total = len(documents)
    logger.info("Starting resolution of %d documents", total)

    outcomes = asyncio.run(resolver.resolve_many(documents))

    stats = {"resolved": 0, "unmatched": 0, "degraded": 0, "failed": 0, "total": total}
    resolutions: dict[str, TemplateResolution] = {}

    for rid, outcome in outcomes.items():
        if isinstance(outcome, Exception):
            logger.error("Document %s failed: %s", rid, outcome)
            stats["failed"] += 1
            continue

        resolutions[rid] = outcome
        if outcome.template is None:
            stats["unmatched"] += 1
        else:
            stats["resolved"] += 1
        if outcome.degraded:
            stats["degraded"] += 1

        logger.info(
            "Resolved %s → %s (confidence %.2f)",
            rid,
            outcome.template.name if outcome.template else "no match",
            outcome.confidence,
        )

    logger.info(
        "Resolution complete: %d resolved, %d unmatched, %d degraded, %d failed",
        stats["resolved"],
        stats["unmatched"],
        stats["degraded"],
        stats["failed"],
    )
    return resolutions, stats
