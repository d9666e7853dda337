"""Tests for mapping form-recognizer analyzeResult payloads."""

import json

import pytest

from resolver.parsers.analyze_result import (
    average_word_confidence,
    from_analyze_result,
    is_analyze_result,
    load_analyze_result,
)


@pytest.fixture()
def payload():
    return {
        "content": "Name: Ravi Kumar\nDate: 01-02-2025",
        "pages": [
            {
                "pageNumber": 1,
                "lines": [{"content": "Name: Ravi Kumar"}, {"content": "Date: 01-02-2025"}],
                "words": [
                    {"content": "Name:", "confidence": 0.9},
                    {"content": "Ravi", "confidence": 0.8},
                    {"content": "Kumar", "confidence": 0.7},
                ],
            }
        ],
        "keyValuePairs": [
            {"key": {"content": "Name"}, "value": {"content": "Ravi Kumar"}, "confidence": 0.88},
            {"key": {"content": "Date"}, "value": {"content": "01-02-2025"}, "confidence": 1.4},
            {"key": {"content": ""}, "value": {"content": "orphan"}, "confidence": 0.5},
        ],
        "entities": [{"content": "Ravi Kumar", "category": "Person", "confidence": 0.95}],
    }


def test_maps_text_lines_and_pairs(payload):
    doc = from_analyze_result(payload)
    assert doc.raw_text.startswith("Name: Ravi Kumar")
    assert [l.content for l in doc.lines] == ["Name: Ravi Kumar", "Date: 01-02-2025"]
    assert [kv.key for kv in doc.key_value_pairs] == ["Name", "Date"]
    assert doc.entities[0].category == "Person"


def test_confidence_clamped(payload):
    doc = from_analyze_result(payload)
    assert doc.key_value_pairs[1].confidence == 1.0


def test_ocr_confidence_is_word_mean(payload):
    doc = from_analyze_result(payload)
    assert doc.ocr_confidence == pytest.approx(0.8)


def test_envelope_accepted(payload):
    doc = from_analyze_result({"status": "succeeded", "analyzeResult": payload})
    assert len(doc.lines) == 2


def test_text_rebuilt_from_pages_when_content_missing(payload):
    payload.pop("content")
    doc = from_analyze_result(payload)
    assert doc.raw_text == "Name: Ravi Kumar\nDate: 01-02-2025"


def test_word_confidence_default():
    assert average_word_confidence([]) == 0.8
    assert average_word_confidence([{"words": [{"content": "x"}]}]) == 0.8


def test_is_analyze_result(payload):
    assert is_analyze_result(payload)
    assert is_analyze_result({"analyzeResult": {}})
    assert not is_analyze_result({"name": "Ravi"})
    assert not is_analyze_result(["content", "pages"])


def test_load_from_disk(tmp_path, payload):
    path = tmp_path / "doc.json"
    path.write_text(json.dumps(payload))
    assert load_analyze_result(path).key_value_pairs[0].value == "Ravi Kumar"


def test_zero_word_confidence_counts():
    words = [{"content": "x", "confidence": 0.0}, {"content": "y", "confidence": 1.0}]
    assert average_word_confidence([{"words": words}]) == pytest.approx(0.5)
