"""Field table exports: CSV and Excel."""

import csv
import logging
from datetime import date

import openpyxl

from resolver.pipeline.models import FieldValue, TemplateResolution

logger = logging.getLogger(__name__)

FIELD_HEADERS = [
    "resource_id", "template", "field_id", "value", "field_confidence", "source",
]


# ── Helpers ──────────────────────────────────────────────────────────


def display_value(value: FieldValue) -> str:
    """Flatten a typed field value for a spreadsheet cell."""
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return "; ".join(value)
    return str(value)


def _build_field_rows(resolutions: list[TemplateResolution]) -> list[list]:
    """One row per (document, field); unmatched documents contribute none."""
    rows = []
    for res in resolutions:
        if res.template is None:
            continue
        for f in res.fields:
            rows.append([
                res.resource_id,
                res.template.id,
                f.field_id,
                display_value(f.value),
                round(f.confidence, 4),
                f.source,
            ])
    return rows


# ── CSV Export ───────────────────────────────────────────────────────


def export_fields_csv(resolutions: list[TemplateResolution], output_path: str) -> None:
    """Export the field table as CSV."""
    rows = _build_field_rows(resolutions)

    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(FIELD_HEADERS)
        writer.writerows(rows)

    logger.info("Field CSV exported to %s (%d rows)", output_path, len(rows))


# ── Excel Export ─────────────────────────────────────────────────────


def export_fields_excel(resolutions: list[TemplateResolution], output_path: str) -> None:
    """Export as Excel with 3 sheets: summary, fields, template scores."""
    wb = openpyxl.Workbook()

    # Sheet 1: one row per document
    ws1 = wb.active
    ws1.title = "Summary"
    ws1.append([
        "resource_id", "template", "confidence", "template_confidence",
        "degraded", "missing_required", "reasoning",
    ])
    for res in resolutions:
        ws1.append([
            res.resource_id,
            res.template.id if res.template else "",
            round(res.confidence, 4),
            round(res.template_confidence, 4),
            res.degraded,
            ", ".join(res.missing_required()),
            res.reasoning,
        ])
    _style_header(ws1)

    # Sheet 2: field values
    ws2 = wb.create_sheet("Fields")
    ws2.append(FIELD_HEADERS)
    for row in _build_field_rows(resolutions):
        ws2.append(row)
    _style_header(ws2)

    # Sheet 3: per-template score breakdown
    ws3 = wb.create_sheet("Template Scores")
    ws3.append([
        "resource_id", "template_id", "pattern_score", "external_score",
        "normalized_pattern_score", "combined_score",
    ])
    for res in resolutions:
        for tid, b in res.per_template_scores.items():
            ws3.append([
                res.resource_id,
                tid,
                b.pattern_score,
                b.external_score,
                round(b.normalized_pattern_score, 4),
                round(b.combined_score, 4),
            ])
    _style_header(ws3)

    wb.save(output_path)
    logger.info("Field Excel exported to %s", output_path)


def _style_header(ws) -> None:
    """Bold the header row."""
    from openpyxl.styles import Font
    for cell in ws[1]:
        cell.font = Font(bold=True)
