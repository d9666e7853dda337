"""Shared data models for the external classifier and entity adapters."""

from typing import Literal, Union

from pydantic import BaseModel, Field

from resolver.parsers.models import Entity

# ── Structured Output Models (sent to Ollama as JSON schema) ─────────


class ClassifierResponse(BaseModel):
    """Structured output from the template classifier model."""

    template_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = Field(description="1-3 sentence explanation")


class EntityOutput(BaseModel):
    text: str
    category: Literal["Person", "DateTime", "Organization", "Location", "Quantity", "Other"]
    confidence: float = Field(ge=0.0, le=1.0)


class Sentiment(BaseModel):
    label: Literal["positive", "neutral", "negative", "mixed"] = "neutral"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class EntityAnalysisResponse(BaseModel):
    """Structured output from the entity/keyphrase model."""

    entities: list[EntityOutput] = Field(default_factory=list)
    key_phrases: list[str] = Field(default_factory=list)
    sentiment: Sentiment = Field(default_factory=Sentiment)


# ── Adapter Results ──────────────────────────────────────────────────


class ClassifierVerdict(BaseModel):
    """Which template a classifier picked, and how it got there."""

    template_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    source: Literal["external", "fallback"]


class TextAnalysis(BaseModel):
    """Entities, key phrases and sentiment for one document."""

    entities: list[Entity] = Field(default_factory=list)
    key_phrases: list[str] = Field(default_factory=list)
    sentiment: Sentiment = Field(default_factory=Sentiment)
    source: Literal["external", "fallback"]


class AdapterFailure(BaseModel):
    """Why an external call produced no usable result."""

    service: str
    reason: str


ClassifierResult = Union[ClassifierVerdict, AdapterFailure]
AnalysisResult = Union[TextAnalysis, AdapterFailure]
