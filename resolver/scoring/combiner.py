"""Merge local pattern scores and the classifier verdict into one decision."""

import logging

from resolver.agents.models import ClassifierVerdict
from resolver.core.templates import TemplateDefinition
from resolver.pipeline.models import CombinedDecision, ScoreBreakdown

logger = logging.getLogger(__name__)

EXTERNAL_WEIGHT = 0.4
PATTERN_WEIGHT = 0.6


def combine(
    templates: list[TemplateDefinition],
    raw_scores: dict[str, int | float],
    normalized_scores: dict[str, float],
    verdict: ClassifierVerdict | None,
) -> CombinedDecision:
    """Weighted combination; highest combined score wins, ties go to registry order.

    Only a verdict from the external service contributes; the local fallback
    verdict is reported in the reasoning but scores zero here.
    """
    per_template: dict[str, ScoreBreakdown] = {}
    best: TemplateDefinition | None = None
    best_score = 0.0

    for template in templates:
        external = 0.0
        if verdict is not None and verdict.source == "external" and verdict.template_id == template.id:
            external = verdict.confidence

        normalized = normalized_scores.get(template.id, 0.0)
        combined = min(EXTERNAL_WEIGHT * external + PATTERN_WEIGHT * normalized, 1.0)

        per_template[template.id] = ScoreBreakdown(
            pattern_score=raw_scores.get(template.id, 0),
            external_score=external,
            normalized_pattern_score=normalized,
            combined_score=combined,
        )

        if combined > best_score:
            best = template
            best_score = combined

    if best is None:
        logger.info("No template scored above zero across %d candidates", len(templates))
    else:
        logger.info("Best template: %s (combined %.3f)", best.id, best_score)

    return CombinedDecision(
        template=best,
        confidence=min(best_score, 1.0),
        per_template_scores=per_template,
    )
