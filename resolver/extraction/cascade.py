"""Per-field value resolution: direct, entity, pattern and context strategies."""

import logging
import re
from difflib import SequenceMatcher
from typing import NamedTuple

from resolver.core.templates import FieldSpec, FieldType, TemplateDefinition
from resolver.extraction.coercion import coerce_value, default_value, is_empty
from resolver.parsers.models import Entity, KVPair
from resolver.pipeline.models import FieldResult, FieldSource, FieldValue
from resolver.scoring.pattern_scorer import compact_name

logger = logging.getLogger(__name__)

CONTEXT_SAME_LINE_CONFIDENCE = 0.7
CONTEXT_NEXT_LINE_CONFIDENCE = 0.6
SIMILAR_KEY_CONFIDENCE_FACTOR = 0.75
SIMILAR_WORD_THRESHOLD = 0.8
MIN_KEY_WORD_LENGTH = 3

_CAMEL_SPLIT_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_KEY_SPLIT_RE = re.compile(r"[_\s\-]+")

_DATE_PATTERNS = (
    (re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}"), 0.9),
    (re.compile(r"\d{1,2}\s+\w+\s+\d{4}"), 0.8),
)
_NUMBER_PATTERNS = ((re.compile(r"\d+"), 0.8),)
_NAME_PATTERNS = ((re.compile(r"[A-Z][a-z]+\s+[A-Z][a-z]+"), 0.7),)


class Candidate(NamedTuple):
    value: FieldValue
    confidence: float
    source: FieldSource


# ── Public API ───────────────────────────────────────────────────────


def extract_fields(
    template: TemplateDefinition,
    text: str,
    lines: list[str],
    entities: list[Entity],
    key_value_pairs: list[KVPair],
    day_first: bool = True,
) -> list[FieldResult]:
    """One FieldResult per FieldSpec, in schema order."""
    results = [
        extract_field(field, text, lines, entities, key_value_pairs, day_first)
        for field in template.fields
    ]
    filled = sum(1 for r in results if r.source != "default")
    logger.info("Extracted %d/%d fields for template %s", filled, len(results), template.id)
    return results


def extract_field(
    field: FieldSpec,
    text: str,
    lines: list[str],
    entities: list[Entity],
    key_value_pairs: list[KVPair],
    day_first: bool = True,
) -> FieldResult:
    """Run every strategy and keep the most confident typed value."""
    raw_hits = (
        direct_match(field, key_value_pairs),
        entity_match(field, entities),
        pattern_match(field, text, day_first),
        context_match(field, lines),
    )

    best: Candidate | None = None
    for hit in raw_hits:
        if hit is None:
            continue
        value = coerce_value(hit.value, field, day_first=day_first)
        if is_empty(value):
            continue
        if best is None or hit.confidence > best.confidence:
            best = Candidate(value, hit.confidence, hit.source)

    if best is None:
        return FieldResult(
            field_id=field.id,
            value=default_value(field),
            confidence=0.0,
            source="default",
        )

    return FieldResult(
        field_id=field.id,
        value=best.value,
        confidence=min(max(best.confidence, 0.0), 1.0),
        source=best.source,
    )


# ── Strategy A: Direct Key/Value Match ───────────────────────────────


def direct_match(field: FieldSpec, key_value_pairs: list[KVPair]) -> Candidate | None:
    """KV pair whose key matches the label or id.

    Priority: exact key, then a key containing or contained by the label/id,
    then the key sharing the most words with the field (at reduced confidence).
    """
    targets = {t for t in (compact_name(field.label), compact_name(field.id)) if t}
    contained: KVPair | None = None

    for kvp in key_value_pairs:
        key = compact_name(kvp.key)
        if not key or not kvp.value.strip():
            continue
        if key in targets:
            return Candidate(kvp.value.strip(), kvp.confidence, "direct_match")
        if contained is None and any(key in t or t in key for t in targets):
            contained = kvp

    if contained is not None:
        return Candidate(contained.value.strip(), contained.confidence, "direct_match")

    similar = similar_key(field, key_value_pairs)
    if similar is not None:
        return Candidate(
            similar.value.strip(),
            similar.confidence * SIMILAR_KEY_CONFIDENCE_FACTOR,
            "direct_match",
        )
    return None


def similar_key(field: FieldSpec, key_value_pairs: list[KVPair]) -> KVPair | None:
    """KV pair whose key shares the most words with the field id or label."""
    field_words = field_key_words(field)
    if not field_words:
        return None

    best: KVPair | None = None
    best_overlap = 0
    for kvp in key_value_pairs:
        if not kvp.value.strip():
            continue
        key_words = split_key(kvp.key)
        overlap = sum(1 for fw in field_words if any(words_similar(fw, kw) for kw in key_words))
        if overlap > best_overlap:
            best, best_overlap = kvp, overlap
    return best


def field_key_words(field: FieldSpec) -> set[str]:
    """Words of the camelCase id and the label, ignoring short connectives."""
    words = _CAMEL_SPLIT_RE.sub(" ", field.id).lower().split()
    words += split_key(field.label)
    return {w for w in words if len(w) >= MIN_KEY_WORD_LENGTH}


def split_key(key: str) -> list[str]:
    return [w for w in _KEY_SPLIT_RE.split(key.lower()) if len(w) >= MIN_KEY_WORD_LENGTH]


def words_similar(a: str, b: str) -> bool:
    """Containment either way, or a close fuzzy match."""
    if a in b or b in a:
        return True
    return SequenceMatcher(None, a, b).ratio() >= SIMILAR_WORD_THRESHOLD


# ── Strategy B: Entity Match ─────────────────────────────────────────


def compatible_categories(field: FieldSpec) -> set[str]:
    """Entity categories (lower-cased) that can fill this field."""
    label = field.label.lower()
    categories: set[str] = set()
    if field.type is FieldType.DATE or "date" in label:
        categories.add("datetime")
    if "name" in label or "person" in label:
        categories.add("person")
    if "organization" in label or "station" in label:
        categories.add("organization")
    if "location" in label or "address" in label:
        categories.add("location")
    return categories


def entity_match(field: FieldSpec, entities: list[Entity]) -> Candidate | None:
    categories = compatible_categories(field)
    if not categories:
        return None
    for entity in entities:
        if entity.category.lower() in categories and entity.text.strip():
            return Candidate(entity.text.strip(), entity.confidence, "ai_inference")
    return None


# ── Strategy C: Pattern Match ────────────────────────────────────────


def field_patterns(field: FieldSpec) -> tuple[tuple[re.Pattern, float], ...]:
    ft = field.type
    if ft is FieldType.DATE:
        return _DATE_PATTERNS
    if ft is FieldType.NUMBER:
        return _NUMBER_PATTERNS
    if ft is FieldType.TEXT or ft is FieldType.TEXTAREA:
        return _NAME_PATTERNS if "name" in field.label.lower() else ()
    if ft is FieldType.SELECT or ft is FieldType.LIST:
        return ()
    raise ValueError(f"Unhandled field type: {ft}")


def pattern_match(field: FieldSpec, text: str, day_first: bool = True) -> Candidate | None:
    """First regex hit that coerces to the field type."""
    for regex, confidence in field_patterns(field):
        for match in regex.finditer(text):
            if not is_empty(coerce_value(match.group(0), field, day_first=day_first)):
                return Candidate(match.group(0), confidence, "pattern_match")
    return None


# ── Strategy D: Context Match ────────────────────────────────────────


def context_match(field: FieldSpec, lines: list[str]) -> Candidate | None:
    """Value after a colon on the label's line, or on the following line."""
    label = field.label.lower().strip()
    if not label:
        return None

    for i, line in enumerate(lines):
        if label not in line.lower():
            continue

        colon = line.find(":")
        if colon != -1:
            value = line[colon + 1 :].strip()
            if value:
                return Candidate(value, CONTEXT_SAME_LINE_CONFIDENCE, "context_match")

        if i + 1 < len(lines):
            next_line = lines[i + 1].strip()
            if next_line and ":" not in next_line:
                return Candidate(next_line, CONTEXT_NEXT_LINE_CONFIDENCE, "context_match")

    return None
