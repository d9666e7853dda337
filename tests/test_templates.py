"""Tests for template registry loading, validation and hashing."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from resolver.core.templates import (
    FieldSpec,
    FieldType,
    StaticTemplateRegistry,
    TemplateCatalog,
    TemplateDefinition,
    TemplateNotFoundError,
    load_template_catalog,
    load_template_registry,
)

TEMPLATES_PATH = Path(__file__).resolve().parent.parent / "templates" / "police_letters_v1.yaml"


@pytest.fixture(scope="module")
def catalog():
    return load_template_catalog(TEMPLATES_PATH)


@pytest.fixture(scope="module")
def registry():
    return load_template_registry(TEMPLATES_PATH)


# ── Loading ──────────────────────────────────────────────────────────


def test_catalog_loads_five_letter_templates(catalog):
    assert catalog.version == "1.0"
    assert [t.id for t in catalog.templates] == [
        "earned_leave",
        "medical_leave",
        "probation_letter",
        "punishment_letter",
        "reward_letter",
    ]


def test_field_types_parsed(catalog):
    earned = catalog.templates[0]
    types = {f.id: f.type for f in earned.fields}
    assert types["date"] is FieldType.DATE
    assert types["numberOfDays"] is FieldType.NUMBER
    assert types["leaveReason"] is FieldType.TEXTAREA
    assert types["name"] is FieldType.TEXT


def test_select_options_parsed(registry):
    probation = registry.get("probation_letter")
    conduct = next(f for f in probation.fields if f.id == "characterAndConduct")
    assert conduct.type is FieldType.SELECT
    assert conduct.options == ["Satisfactory", "Good", "Excellent"]


def test_expected_entity_types_is_frozenset(catalog):
    for t in catalog.templates:
        assert isinstance(t.expected_entity_types, frozenset)
        assert "DateTime" in t.expected_entity_types


def test_required_fields(registry):
    earned = registry.get("earned_leave")
    required = [f.id for f in earned.required_fields()]
    assert "pcNo" not in required
    assert "name" in required


# ── Validation ───────────────────────────────────────────────────────


def test_options_rejected_on_non_select():
    with pytest.raises(ValidationError, match="has options"):
        FieldSpec(id="x", label="X", type=FieldType.TEXT, options=["a"])


def test_duplicate_field_ids_rejected():
    with pytest.raises(ValidationError, match="Duplicate field id"):
        TemplateDefinition(
            id="t",
            name="T",
            category="c",
            fields=[FieldSpec(id="a", label="A"), FieldSpec(id="a", label="A2")],
        )


def test_duplicate_template_ids_rejected():
    t = TemplateDefinition(id="t", name="T", category="c", fields=[])
    with pytest.raises(ValidationError, match="Duplicate template ids"):
        TemplateCatalog(version="1", templates=[t, t])


def test_invalid_yaml_raises_validation_error(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text(yaml.dump({"version": "1", "templates": [{"id": "x"}]}))
    with pytest.raises(ValidationError):
        load_template_catalog(bad)


def test_template_is_frozen(registry):
    with pytest.raises(ValidationError):
        registry.get("earned_leave").name = "Changed"


# ── Registry ─────────────────────────────────────────────────────────


def test_registry_returns_copy(registry):
    listed = registry.list_templates()
    listed.clear()
    assert len(registry.list_templates()) == 5


def test_get_unknown_template_raises(registry):
    with pytest.raises(TemplateNotFoundError):
        registry.get("transfer_order")


def test_not_found_is_key_error(registry):
    with pytest.raises(KeyError):
        registry.get("transfer_order")


def test_empty_registry():
    assert StaticTemplateRegistry([]).list_templates() == []


# ── Descriptor and Hashing ───────────────────────────────────────────


def test_descriptor_uses_description(registry):
    d = registry.get("medical_leave").descriptor()
    assert d["id"] == "medical_leave"
    assert d["name"] == "Medical Leave Letter"
    assert "medical certificate" in d["description"]


def test_descriptor_falls_back_to_field_labels():
    t = TemplateDefinition(
        id="t", name="Transfer Order", category="c",
        fields=[FieldSpec(id="a", label="Posting"), FieldSpec(id="b", label="Unit")],
    )
    assert t.descriptor()["description"] == "Transfer Order with fields: Posting, Unit"


def test_fingerprint_is_deterministic(registry):
    t = registry.get("earned_leave")
    assert t.fingerprint() == t.fingerprint()
    assert len(t.fingerprint()) == 64


def test_fingerprint_ignores_entity_type_order():
    a = TemplateDefinition(
        id="t", name="T", category="c", fields=[],
        expected_entity_types=frozenset(["Person", "DateTime", "Organization"]),
    )
    b = TemplateDefinition(
        id="t", name="T", category="c", fields=[],
        expected_entity_types=frozenset(["Organization", "Person", "DateTime"]),
    )
    assert a.fingerprint() == b.fingerprint()


def test_fingerprint_changes_with_fields(registry):
    t = registry.get("earned_leave")
    changed = t.model_copy(update={"fields": t.fields[:-1]})
    assert changed.fingerprint() != t.fingerprint()


def test_catalog_hash_depends_on_order(catalog):
    forward = StaticTemplateRegistry(catalog.templates)
    backward = StaticTemplateRegistry(list(reversed(catalog.templates)))
    assert forward.catalog_hash() == StaticTemplateRegistry(catalog.templates).catalog_hash()
    assert forward.catalog_hash() != backward.catalog_hash()
