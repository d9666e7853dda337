"""Tests for export modules: canonical JSON, CSV, Excel."""

import csv
import json
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import openpyxl
import pytest

from resolver.agents.classifier import SemanticClassifier
from resolver.agents.entities import EntityAnalyzer
from resolver.core.config import EngineConfig
from resolver.core.templates import TemplateNotFoundError, load_template_registry
from resolver.exporters import export_all
from resolver.exporters.field_table import FIELD_HEADERS, display_value, export_fields_csv
from resolver.exporters.json_export import format_document, parse_canonical
from resolver.pipeline.resolver import TemplateResolver

TEMPLATES_PATH = Path(__file__).resolve().parent.parent / "templates" / "police_letters_v1.yaml"

LEAVE_LETTER = "\n".join([
    "To the Commandant",
    "R c No.: 118/2025",
    "Name: Ravi Kumar",
    "Date: 01-02-2025",
    "Leave From Date: 03-02-2025",
    "Leave To Date: 07-02-2025",
    "Leave Reason: family function",
    "Sub: earned leave application",
])


@pytest.fixture(scope="module")
def registry():
    return load_template_registry(TEMPLATES_PATH)


@pytest.fixture(scope="module")
def resolutions(registry):
    cfg = EngineConfig(use_external_services=False)
    resolver = TemplateResolver(
        registry,
        SemanticClassifier(MagicMock(), cfg),
        EntityAnalyzer(MagicMock(), cfg),
        config=cfg,
    )
    return [
        resolver.resolve(LEAVE_LETTER, resource_id="leave-1"),
        resolver.resolve("xyz", resource_id="blank-1"),
    ]


# ── Canonical JSON ───────────────────────────────────────────────────


def test_format_document_shape(resolutions):
    doc = format_document(resolutions[0])
    assert doc["templateType"] == "earned_leave"
    assert set(doc) >= {"templateType", "generatedAt", "data", "metadata"}
    assert doc["metadata"]["confidence"] == resolutions[0].confidence
    assert doc["metadata"]["extractedAt"] == resolutions[0].resolved_at.isoformat()
    assert doc["data"]["date"] == "2025-02-01"
    assert doc["data"]["name"] == "Ravi Kumar"
    json.dumps(doc)


def test_unmatched_document_projection(resolutions):
    doc = format_document(resolutions[1])
    assert doc["templateType"] is None
    assert doc["data"] == {}


def test_canonical_round_trip(resolutions, registry):
    before = resolutions[0].field_map()
    restored = parse_canonical(json.dumps(format_document(resolutions[0])), registry)
    assert restored == before
    assert restored["date"] == date(2025, 2, 1)


def test_parse_fills_missing_fields(registry):
    values = parse_canonical({"templateType": "medical_leave", "data": {"rank": "PC"}}, registry)
    assert values["rank"] == "PC"
    assert values["name"] == ""
    assert values["dateOfSubmission"] is None
    assert set(values) == set(registry.get("medical_leave").field_ids())


def test_parse_unknown_template(registry):
    with pytest.raises(TemplateNotFoundError):
        parse_canonical({"templateType": "transfer_order", "data": {}}, registry)


def test_parse_unmatched_projection(resolutions, registry):
    with pytest.raises(KeyError):
        parse_canonical(format_document(resolutions[1]), registry)


# ── Field Table ──────────────────────────────────────────────────────


def test_display_value():
    assert display_value(None) == ""
    assert display_value(date(2025, 2, 1)) == "2025-02-01"
    assert display_value(["HC Rao", "PC Naidu"]) == "HC Rao; PC Naidu"
    assert display_value(5) == "5"


def test_csv_one_row_per_field(tmp_path, resolutions):
    path = tmp_path / "fields.csv"
    export_fields_csv(resolutions, str(path))

    with open(path) as f:
        rows = list(csv.reader(f))
    assert rows[0] == FIELD_HEADERS
    assert len(rows) - 1 == len(resolutions[0].fields)
    assert all(r[0] == "leave-1" for r in rows[1:])


# ── Export All ───────────────────────────────────────────────────────


def test_export_all(tmp_path, resolutions):
    paths = export_all(resolutions, str(tmp_path / "exports"))

    assert set(paths) == {"canonical_json", "fields_csv", "fields_xlsx"}
    for p in paths.values():
        assert Path(p).exists()

    docs = json.loads(Path(paths["canonical_json"]).read_text())
    assert [d["metadata"]["resourceId"] for d in docs] == ["leave-1", "blank-1"]

    wb = openpyxl.load_workbook(paths["fields_xlsx"])
    assert wb.sheetnames == ["Summary", "Fields", "Template Scores"]
    assert wb["Summary"].max_row == 3
    assert wb["Summary"]["A1"].font.bold
    assert wb["Template Scores"].max_row == 1 + 2 * 5
