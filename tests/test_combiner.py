"""Tests for combining pattern scores with the classifier verdict."""

import pytest

from resolver.agents.models import ClassifierVerdict
from resolver.core.templates import TemplateDefinition
from resolver.scoring.combiner import combine


def _t(tid):
    return TemplateDefinition(id=tid, name=tid.title(), category="Leave", fields=[])


@pytest.fixture()
def templates():
    return [_t("earned_leave"), _t("medical_leave")]


def _verdict(tid, conf, source="external"):
    return ClassifierVerdict(template_id=tid, confidence=conf, reasoning="r", source=source)


def test_pattern_only(templates):
    d = combine(templates, {"earned_leave": 30, "medical_leave": 10},
                {"earned_leave": 1.0, "medical_leave": 1 / 3}, None)
    assert d.template.id == "earned_leave"
    assert d.confidence == pytest.approx(0.6)
    assert d.per_template_scores["medical_leave"].combined_score == pytest.approx(0.2)


def test_external_verdict_adds_weighted_confidence(templates):
    d = combine(templates, {"earned_leave": 10, "medical_leave": 10},
                {"earned_leave": 1.0, "medical_leave": 1.0},
                _verdict("medical_leave", 0.9))
    assert d.template.id == "medical_leave"
    assert d.per_template_scores["medical_leave"].external_score == 0.9
    assert d.per_template_scores["medical_leave"].combined_score == pytest.approx(0.96)
    assert d.per_template_scores["earned_leave"].external_score == 0.0


def test_fallback_verdict_contributes_nothing(templates):
    d = combine(templates, {"earned_leave": 30, "medical_leave": 10},
                {"earned_leave": 1.0, "medical_leave": 1 / 3},
                _verdict("medical_leave", 0.8, source="fallback"))
    assert d.template.id == "earned_leave"
    for b in d.per_template_scores.values():
        assert b.external_score == 0.0
        assert b.combined_score == pytest.approx(0.6 * b.normalized_pattern_score)


def test_tie_goes_to_registry_order(templates):
    d = combine(templates, {"earned_leave": 5, "medical_leave": 5},
                {"earned_leave": 1.0, "medical_leave": 1.0}, None)
    assert d.template.id == "earned_leave"


def test_all_zero_gives_no_template(templates):
    d = combine(templates, {"earned_leave": 0, "medical_leave": 0},
                {"earned_leave": 0.0, "medical_leave": 0.0}, None)
    assert d.template is None
    assert d.confidence == 0.0
    assert set(d.per_template_scores) == {"earned_leave", "medical_leave"}


def test_external_alone_can_choose(templates):
    d = combine(templates, {"earned_leave": 0, "medical_leave": 0},
                {"earned_leave": 0.0, "medical_leave": 0.0},
                _verdict("medical_leave", 0.5))
    assert d.template.id == "medical_leave"
    assert d.confidence == pytest.approx(0.2)


def test_no_templates():
    d = combine([], {}, {}, None)
    assert d.template is None
    assert d.per_template_scores == {}


def test_combined_within_bounds(templates):
    d = combine(templates, {"earned_leave": 100, "medical_leave": 0},
                {"earned_leave": 1.0, "medical_leave": 0.0},
                _verdict("earned_leave", 1.0))
    assert d.confidence == pytest.approx(1.0)
    assert all(0.0 <= b.combined_score <= 1.0 for b in d.per_template_scores.values())
