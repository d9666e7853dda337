"""Map a form-recognizer `analyzeResult` payload onto an ExtractedDocument."""

import json
import logging
from pathlib import Path

from resolver.parsers.models import Entity, ExtractedDocument, KVPair, LineSignal

logger = logging.getLogger(__name__)

DEFAULT_OCR_CONFIDENCE = 0.8


# ── Public API ───────────────────────────────────────────────────────


def from_analyze_result(payload: dict) -> ExtractedDocument:
    """Build an ExtractedDocument from an analyzeResult dict.

    Accepts either the bare result or the polling envelope
    `{"status": ..., "analyzeResult": {...}}`.
    """
    result = payload.get("analyzeResult", payload)
    pages = result.get("pages") or []

    lines = [
        LineSignal(content=line.get("content", ""), page=page.get("pageNumber", 1) or 1)
        for page in pages
        for line in page.get("lines") or []
    ]

    raw_text = result.get("content") or ""
    if not raw_text and lines:
        raw_text = _join_pages(pages)

    return ExtractedDocument(
        raw_text=raw_text,
        lines=lines,
        key_value_pairs=_key_value_pairs(result.get("keyValuePairs") or []),
        entities=_entities(result.get("entities") or []),
        ocr_confidence=average_word_confidence(pages),
    )


def load_analyze_result(path: str | Path) -> ExtractedDocument:
    """Read an analyzeResult JSON file from disk."""
    with open(path) as f:
        return from_analyze_result(json.load(f))


def is_analyze_result(payload: object) -> bool:
    """Heuristic: does this JSON look like a form-recognizer result?"""
    if not isinstance(payload, dict):
        return False
    if "analyzeResult" in payload:
        return True
    return "content" in payload and "pages" in payload


def average_word_confidence(pages: list[dict]) -> float:
    """Mean OCR word confidence; words without one count as 0.8."""
    total = 0.0
    count = 0
    for page in pages:
        for word in page.get("words") or []:
            conf = word.get("confidence")
            total += DEFAULT_OCR_CONFIDENCE if conf is None else conf
            count += 1
    return total / count if count else DEFAULT_OCR_CONFIDENCE


# ── Helpers ──────────────────────────────────────────────────────────


def _join_pages(pages: list[dict]) -> str:
    return "\n\n".join(
        "\n".join(line.get("content", "") for line in page.get("lines") or [])
        for page in pages
    )


def _key_value_pairs(raw: list[dict]) -> list[KVPair]:
    pairs: list[KVPair] = []
    for kvp in raw:
        key = ((kvp.get("key") or {}).get("content") or "").strip()
        value = ((kvp.get("value") or {}).get("content") or "").strip()
        if not key:
            continue
        pairs.append(KVPair(key=key, value=value, confidence=_clamp(kvp.get("confidence", 0.0))))
    return pairs


def _entities(raw: list[dict]) -> list[Entity]:
    entities: list[Entity] = []
    for ent in raw:
        text = ent.get("content") or ent.get("text") or ""
        if not text:
            continue
        entities.append(
            Entity(
                text=text,
                category=ent.get("category", "Other"),
                confidence=_clamp(ent.get("confidence", 0.0)),
            )
        )
    return entities


def _clamp(value) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        logger.debug("Non-numeric confidence %r — using 0.0", value)
        return 0.0
    return min(max(v, 0.0), 1.0)
