"""Shared data models for document signals."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Entity(BaseModel):
    """A detected entity such as a person, date or organization."""

    model_config = ConfigDict(frozen=True)

    text: str
    category: str = Field(description="Person, DateTime, Organization, Location, ...")
    confidence: float = Field(ge=0.0, le=1.0)


class KVPair(BaseModel):
    """A key/value pair reported by the upstream form recognizer."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str
    confidence: float = Field(ge=0.0, le=1.0)


class LineSignal(BaseModel):
    """One line of digitized text."""

    model_config = ConfigDict(frozen=True)

    content: str
    page: int = Field(default=1, ge=1)


class ExtractedDocument(BaseModel):
    """Digitized document handed over by the document-intelligence step."""

    model_config = ConfigDict(frozen=True)

    raw_text: str = ""
    entities: list[Entity] = Field(default_factory=list)
    key_value_pairs: list[KVPair] = Field(default_factory=list)
    lines: list[LineSignal] = Field(default_factory=list)
    ocr_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class NormalizedSignals(BaseModel):
    """Flattened view of any input, ready for scoring and extraction."""

    model_config = ConfigDict(frozen=True)

    text: str
    lines: list[str] = Field(default_factory=list)
    entities: list[Entity] = Field(default_factory=list)
    key_value_pairs: list[KVPair] = Field(default_factory=list)
    field_names: list[str] = Field(default_factory=list)
    base_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    structured: bool = False
