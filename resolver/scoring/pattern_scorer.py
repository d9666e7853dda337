"""Local, deterministic per-template scoring from keywords, patterns and structure."""

import logging
import re

from resolver.core.templates import TemplateDefinition
from resolver.parsers.models import Entity

logger = logging.getLogger(__name__)

KEYWORD_POINTS = 20
PATTERN_POINTS = 15
ENTITY_POINTS = 10
FIELD_OVERLAP_POINTS = 25
KEY_PHRASE_POINTS = 5


# ── Public API ───────────────────────────────────────────────────────


def score_templates(
    text: str,
    entities: list[Entity],
    key_phrases: list[str],
    field_names: list[str],
    templates: list[TemplateDefinition],
) -> dict[str, int]:
    """Raw additive score per template id, in registry order."""
    text_lower = text.lower()
    categories = {e.category.lower() for e in entities}
    phrases = [p.lower() for p in key_phrases]
    names = [n for n in (compact_name(f) for f in field_names) if n]

    scores: dict[str, int] = {}
    for template in templates:
        keywords = [k.lower() for k in template.keywords if k.strip()]
        score = 0

        # Keyword matching
        score += KEYWORD_POINTS * sum(1 for k in keywords if k in text_lower)

        # Pattern matching
        score += PATTERN_POINTS * sum(
            1 for p in template.patterns if p.strip() and p.lower() in text_lower
        )

        # Entity matching
        score += ENTITY_POINTS * sum(
            1 for t in template.expected_entity_types if t.lower() in categories
        )

        # Field structure matching
        score += FIELD_OVERLAP_POINTS * field_overlap(names, template)

        # Key phrase matching
        score += KEY_PHRASE_POINTS * sum(
            1 for phrase in phrases if any(k in phrase for k in keywords)
        )

        scores[template.id] = score

    logger.debug("Pattern scores: %s", scores)
    return scores


def normalize_scores(raw: dict[str, int | float]) -> dict[str, float]:
    """Divide by the maximum; an all-zero input stays all-zero."""
    if not raw:
        return {}
    top = max(raw.values())
    if top <= 0:
        return {tid: 0.0 for tid in raw}
    return {tid: score / top for tid, score in raw.items()}


def field_overlap(compact_names: list[str], template: TemplateDefinition) -> int:
    """Count (input name, field id) pairs where one contains the other."""
    hits = 0
    for field_id in (compact_name(f.id) for f in template.fields):
        if not field_id:
            continue
        for name in compact_names:
            if name in field_id or field_id in name:
                hits += 1
    return hits


# ── Helpers ──────────────────────────────────────────────────────────

_SEPARATOR_RE = re.compile(r"[\s_\-]+")


def compact_name(name: str) -> str:
    """Lowercase and drop spaces, underscores and hyphens."""
    return _SEPARATOR_RE.sub("", name.lower())
