"""Flatten arbitrary input into a text blob plus a line-indexed view."""

import logging
from typing import Any

from resolver.parsers.models import ExtractedDocument, KVPair, NormalizedSignals

logger = logging.getLogger(__name__)

DIGITIZED_BASE_CONFIDENCE = 0.8
STRUCTURED_BASE_CONFIDENCE = 1.0
STRUCTURED_KV_CONFIDENCE = 0.95


# ── Public API ───────────────────────────────────────────────────────


def normalize(data: Any) -> NormalizedSignals:
    """Normalize an ExtractedDocument, plain text, or nested dict/list input.

    Never raises: anything unrecognized is stringified.
    """
    if isinstance(data, ExtractedDocument):
        return _from_document(data)

    if isinstance(data, str):
        return _from_document(ExtractedDocument(raw_text=data))

    if isinstance(data, (dict, list, tuple)):
        return _from_structure(data)

    if data is None:
        return NormalizedSignals(text="", base_confidence=STRUCTURED_BASE_CONFIDENCE, structured=True)

    logger.debug("Unrecognized input type %s — stringifying", type(data).__name__)
    return NormalizedSignals(
        text=str(data), base_confidence=STRUCTURED_BASE_CONFIDENCE, structured=True
    )


def flatten_text(data: Any) -> str:
    """Every key and scalar value of a nested structure, space-joined."""
    return " ".join(_walk_tokens(data))


# ── Digitized Documents ──────────────────────────────────────────────


def _from_document(doc: ExtractedDocument) -> NormalizedSignals:
    if doc.lines:
        lines = [line.content for line in doc.lines]
    else:
        lines = doc.raw_text.splitlines()

    text = doc.raw_text or "\n".join(lines)
    base = doc.ocr_confidence if doc.ocr_confidence is not None else DIGITIZED_BASE_CONFIDENCE

    return NormalizedSignals(
        text=text,
        lines=lines,
        entities=list(doc.entities),
        key_value_pairs=list(doc.key_value_pairs),
        field_names=[kv.key for kv in doc.key_value_pairs if kv.key.strip()],
        base_confidence=base,
        structured=False,
    )


# ── Structured (JSON-like) Input ─────────────────────────────────────


def _from_structure(data: dict | list | tuple) -> NormalizedSignals:
    field_names = [str(k) for k in data] if isinstance(data, dict) else []
    pairs = [
        KVPair(key=key, value=value, confidence=STRUCTURED_KV_CONFIDENCE)
        for key, value in _walk_leaves(data)
    ]
    return NormalizedSignals(
        text=flatten_text(data),
        lines=[],
        key_value_pairs=pairs,
        field_names=field_names,
        base_confidence=STRUCTURED_BASE_CONFIDENCE,
        structured=True,
    )


def _walk_tokens(obj: Any) -> list[str]:
    """Recursive key/value token stream, in insertion order."""
    tokens: list[str] = []
    if isinstance(obj, dict):
        for key, value in obj.items():
            tokens.append(str(key))
            tokens.extend(_walk_tokens(value))
    elif isinstance(obj, (list, tuple, set)):
        for item in obj:
            tokens.extend(_walk_tokens(item))
    elif obj is not None:
        tokens.append(str(obj))
    return tokens


def _walk_leaves(obj: Any, key: str = "") -> list[tuple[str, str]]:
    """(nearest key, stringified value) for every scalar leaf."""
    leaves: list[tuple[str, str]] = []
    if isinstance(obj, dict):
        for k, v in obj.items():
            leaves.extend(_walk_leaves(v, str(k)))
    elif isinstance(obj, (list, tuple, set)):
        if key and obj and all(not isinstance(i, (dict, list, tuple, set)) for i in obj):
            leaves.append((key, ", ".join(str(i) for i in obj if i is not None)))
        else:
            for item in obj:
                leaves.extend(_walk_leaves(item, key))
    elif obj is not None and key:
        leaves.append((key, str(obj)))
    return leaves
