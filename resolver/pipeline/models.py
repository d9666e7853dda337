"""Shared data models for template resolution results."""

from datetime import date, datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from resolver.core.templates import TemplateDefinition

FieldValue = Union[str, int, float, date, list[str], None]

FieldSource = Literal[
    "direct_match", "pattern_match", "context_match", "ai_inference", "default"
]


class ScoreBreakdown(BaseModel):
    """How one template scored across local and external signals."""

    pattern_score: float = Field(ge=0.0)
    external_score: float = Field(ge=0.0, le=1.0)
    normalized_pattern_score: float = Field(ge=0.0, le=1.0)
    combined_score: float = Field(ge=0.0, le=1.0)


class FieldResult(BaseModel):
    """A single resolved field with its provenance."""

    field_id: str
    value: FieldValue
    confidence: float = Field(ge=0.0, le=1.0)
    source: FieldSource


class CombinedDecision(BaseModel):
    """Winner of the score combination step."""

    template: Optional[TemplateDefinition]
    confidence: float = Field(ge=0.0, le=1.0)
    per_template_scores: dict[str, ScoreBreakdown]


class TemplateResolution(BaseModel):
    """Final output: the chosen template and its confidence-scored fields."""

    resource_id: str
    template: Optional[TemplateDefinition]
    confidence: float = Field(ge=0.0, le=1.0)
    template_confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    fields: list[FieldResult]
    per_template_scores: dict[str, ScoreBreakdown]
    degraded: bool = False
    resolved_at: datetime

    def field_map(self) -> dict[str, FieldValue]:
        return {f.field_id: f.value for f in self.fields}

    def missing_required(self) -> list[str]:
        """Required field ids that fell through to the default."""
        if self.template is None:
            return []
        by_id = {f.field_id: f for f in self.fields}
        return [
            spec.id
            for spec in self.template.required_fields()
            if by_id[spec.id].source == "default"
        ]
