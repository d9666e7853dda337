"""Canonical JSON projection of resolutions, and its typed round-trip."""

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

from resolver.core.templates import TemplateDefinition, TemplateNotFoundError, TemplateRegistry
from resolver.extraction.coercion import coerce_value, default_value, is_empty
from resolver.pipeline.models import FieldValue, TemplateResolution

logger = logging.getLogger(__name__)

CANONICAL_VERSION = "1.0"
PROCESSING_METHOD = "template-resolution"


# ── Projection ───────────────────────────────────────────────────────


def format_document(resolution: TemplateResolution) -> dict:
    """Project a resolution onto the canonical document shape.

    An unmatched resolution projects with a null templateType and no data.
    """
    template = resolution.template
    return {
        "templateType": template.id if template else None,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "version": CANONICAL_VERSION,
        "data": {f.field_id: _json_value(f.value) for f in resolution.fields},
        "metadata": {
            "confidence": resolution.confidence,
            "extractedAt": resolution.resolved_at.isoformat(),
            "resourceId": resolution.resource_id,
            "processingMethod": PROCESSING_METHOD,
        },
    }


def export_canonical_json(resolutions: list[TemplateResolution], output_path: str) -> None:
    """Write the canonical projections of a batch as one JSON array."""
    documents = [format_document(r) for r in resolutions]
    Path(output_path).write_text(json.dumps(documents, indent=2, ensure_ascii=False))
    logger.info("Canonical JSON exported to %s (%d documents)", output_path, len(documents))


# ── Round-Trip ───────────────────────────────────────────────────────


def parse_canonical(payload: dict | str, registry: TemplateRegistry) -> dict[str, FieldValue]:
    """Read a canonical document back into typed field values.

    Every field of the template is present in the result; fields missing
    from the payload get their type default. Raises TemplateNotFoundError
    when templateType is not in the registry.
    """
    if isinstance(payload, str):
        payload = json.loads(payload)

    template = _find_template(registry, payload.get("templateType"))
    data = payload.get("data") or {}

    values: dict[str, FieldValue] = {}
    for field in template.fields:
        raw = data.get(field.id)
        value = coerce_value(raw, field) if raw is not None else None
        values[field.id] = default_value(field) if is_empty(value) else value
    return values


def _find_template(registry: TemplateRegistry, template_id: str | None) -> TemplateDefinition:
    for template in registry.list_templates():
        if template.id == template_id:
            return template
    raise TemplateNotFoundError(template_id)


def _json_value(value: FieldValue):
    if isinstance(value, date):
        return value.isoformat()
    return value
