"""Overall confidence and the human-readable reasoning trace."""

from resolver.agents.models import ClassifierVerdict, TextAnalysis
from resolver.core.templates import TemplateDefinition
from resolver.pipeline.models import FieldResult

BASE_WEIGHT = 0.3
TEMPLATE_WEIGHT = 0.3
FIELD_WEIGHT = 0.4


def overall_confidence(
    base_confidence: float,
    template_confidence: float,
    fields: list[FieldResult],
) -> float:
    """Weighted blend of extraction, template-match and mean field confidence."""
    mean_field = sum(f.confidence for f in fields) / len(fields) if fields else 0.0
    blended = (
        BASE_WEIGHT * base_confidence
        + TEMPLATE_WEIGHT * template_confidence
        + FIELD_WEIGHT * mean_field
    )
    return min(max(blended, 0.0), 1.0)


def build_reasoning(
    template: TemplateDefinition | None,
    analysis: TextAnalysis,
    raw_scores: dict[str, int | float],
    template_names: dict[str, str],
    verdict: ClassifierVerdict | None,
) -> str:
    """Reasoning segments, always in this order:

    selected template, entity categories, key phrases, top-3 pattern
    scores, classifier reasoning.
    """
    reasons = [f"Selected template: {template.name if template else 'none'}"]

    if analysis.entities:
        label = "Detected entities (fallback)" if analysis.source == "fallback" else "Detected entities"
        categories = list(dict.fromkeys(e.category for e in analysis.entities))
        reasons.append(f"{label}: {', '.join(categories)}")

    if analysis.key_phrases:
        reasons.append(f"Key phrases found: {', '.join(analysis.key_phrases[:3])}")

    # Stable sort: equal scores keep registry order
    top = sorted(raw_scores.items(), key=lambda kv: kv[1], reverse=True)[:3]
    if top:
        formatted = ", ".join(f"{template_names.get(tid, tid)}: {score:.1f}" for tid, score in top)
        reasons.append(f"Pattern matching scores: {formatted}")

    if verdict is not None and verdict.reasoning:
        prefix = "AI analysis" if verdict.source == "external" else "Fallback analysis"
        reasons.append(f"{prefix}: {verdict.reasoning}")
    elif analysis.source == "fallback":
        reasons.append("Fallback analysis: local entity extraction only")

    return ". ".join(reasons)
