"""Tests for input normalization."""

from resolver.parsers.models import Entity, ExtractedDocument, KVPair, LineSignal
from resolver.parsers.normalizer import (
    DIGITIZED_BASE_CONFIDENCE,
    STRUCTURED_BASE_CONFIDENCE,
    STRUCTURED_KV_CONFIDENCE,
    flatten_text,
    normalize,
)


# ── Digitized Documents ──────────────────────────────────────────────


def test_plain_text_splits_lines():
    sig = normalize("To the Commandant\nSub: earned leave\n")
    assert sig.text == "To the Commandant\nSub: earned leave\n"
    assert sig.lines == ["To the Commandant", "Sub: earned leave"]
    assert sig.base_confidence == DIGITIZED_BASE_CONFIDENCE
    assert sig.structured is False


def test_document_keeps_entities_and_pairs():
    doc = ExtractedDocument(
        raw_text="Name: Ravi Kumar",
        entities=[Entity(text="Ravi Kumar", category="Person", confidence=0.9)],
        key_value_pairs=[KVPair(key="Name", value="Ravi Kumar", confidence=0.88)],
        lines=[LineSignal(content="Name: Ravi Kumar")],
        ocr_confidence=0.93,
    )
    sig = normalize(doc)
    assert sig.lines == ["Name: Ravi Kumar"]
    assert sig.entities[0].text == "Ravi Kumar"
    assert sig.key_value_pairs[0].value == "Ravi Kumar"
    assert sig.field_names == ["Name"]
    assert sig.base_confidence == 0.93


def test_document_text_rebuilt_from_lines():
    doc = ExtractedDocument(lines=[LineSignal(content="a"), LineSignal(content="b", page=2)])
    assert normalize(doc).text == "a\nb"


# ── Structured Input ─────────────────────────────────────────────────


def test_dict_flattens_keys_and_values():
    sig = normalize({"applicant": {"name": "Ravi", "days": 5}, "type": "earned leave"})
    assert sig.text == "applicant name Ravi days 5 type earned leave"
    assert sig.field_names == ["applicant", "type"]
    assert sig.structured is True
    assert sig.base_confidence == STRUCTURED_BASE_CONFIDENCE
    assert sig.lines == []


def test_dict_leaves_become_pairs():
    sig = normalize({"applicant": {"name": "Ravi"}, "witnesses": ["A", "B"], "note": None})
    pairs = {kv.key: kv.value for kv in sig.key_value_pairs}
    assert pairs == {"name": "Ravi", "witnesses": "A, B"}
    assert all(kv.confidence == STRUCTURED_KV_CONFIDENCE for kv in sig.key_value_pairs)


def test_list_of_records():
    sig = normalize([{"rank": "PC"}, {"rank": "HC"}])
    assert sig.field_names == []
    assert [kv.value for kv in sig.key_value_pairs] == ["PC", "HC"]


# ── Degenerate Input ─────────────────────────────────────────────────


def test_none_gives_empty_text():
    sig = normalize(None)
    assert sig.text == ""
    assert sig.key_value_pairs == []


def test_scalar_is_stringified():
    assert normalize(42).text == "42"


def test_empty_string():
    sig = normalize("")
    assert sig.text == ""
    assert sig.lines == []


def test_flatten_text_preserves_order():
    assert flatten_text({"b": 1, "a": [2, {"c": 3}]}) == "b 1 a 2 c 3"
