"""Template registry: YAML loader, Pydantic models, and template hashing."""

import hashlib
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


# ── Field Schema ─────────────────────────────────────────────────────


class FieldType(str, Enum):
    """Data type of a template field."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    TEXTAREA = "textarea"
    LIST = "list"


class FieldSpec(BaseModel):
    """Single field a document of this template is expected to carry."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: Optional[list[str]] = Field(
        default=None, description="Allowed values when type is 'select'"
    )

    @model_validator(mode="after")
    def options_only_for_select(self) -> "FieldSpec":
        if self.options and self.type is not FieldType.SELECT:
            raise ValueError(
                f"Field '{self.id}' has options but type '{self.type.value}'"
            )
        return self


# ── Template Definition ──────────────────────────────────────────────


class TemplateDefinition(BaseModel):
    """A named schema of typed fields plus the signals that identify it."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    description: str = ""
    fields: list[FieldSpec]
    keywords: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    expected_entity_types: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("fields")
    @classmethod
    def unique_field_ids(cls, v: list[FieldSpec]) -> list[FieldSpec]:
        seen: set[str] = set()
        for f in v:
            if f.id in seen:
                raise ValueError(f"Duplicate field id: {f.id}")
            seen.add(f.id)
        return v

    def field_ids(self) -> list[str]:
        return [f.id for f in self.fields]

    def required_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields if f.required]

    def descriptor(self) -> dict:
        """Compact description sent to the external classifier."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description
            or f"{self.name} with fields: {', '.join(f.label for f in self.fields)}",
        }

    def fingerprint(self) -> str:
        """SHA-256 of the template definition (canonical JSON)."""
        data = self.model_dump(mode="json")
        data["expected_entity_types"] = sorted(self.expected_entity_types)
        return _canonical_hash(data)


class TemplateCatalog(BaseModel):
    """Top-level model of a template YAML file."""

    version: str
    templates: list[TemplateDefinition]

    @field_validator("templates")
    @classmethod
    def unique_template_ids(
        cls, v: list[TemplateDefinition]
    ) -> list[TemplateDefinition]:
        ids = [t.id for t in v]
        dupes = {i for i in ids if ids.count(i) > 1}
        if dupes:
            raise ValueError(f"Duplicate template ids: {', '.join(sorted(dupes))}")
        return v


# ── Registry ─────────────────────────────────────────────────────────


class TemplateRegistry(Protocol):
    """Read-only source of template definitions."""

    def list_templates(self) -> list[TemplateDefinition]: ...


class TemplateNotFoundError(KeyError):
    """Raised when a template id is not present in the registry."""


class StaticTemplateRegistry:
    """In-memory registry over a fixed snapshot of templates."""

    def __init__(self, templates: list[TemplateDefinition]):
        self._templates = tuple(templates)

    def list_templates(self) -> list[TemplateDefinition]:
        return list(self._templates)

    def get(self, template_id: str) -> TemplateDefinition:
        for t in self._templates:
            if t.id == template_id:
                return t
        raise TemplateNotFoundError(template_id)

    def catalog_hash(self) -> str:
        """SHA-256 over all template fingerprints, in registry order."""
        return _canonical_hash({"templates": [t.fingerprint() for t in self._templates]})


# ── Helpers ──────────────────────────────────────────────────────────


def _canonical_hash(data: dict) -> str:
    """Deterministic SHA-256 hash of a dict via sorted-key JSON."""
    blob = json.dumps(data, sort_keys=True, default=str).encode()
    return hashlib.sha256(blob).hexdigest()


def load_template_catalog(path: str | Path) -> TemplateCatalog:
    """Load a YAML template catalog from disk and return a validated model."""
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f)
    catalog = TemplateCatalog.model_validate(raw)
    logger.info("Loaded %d templates from %s (v%s)", len(catalog.templates), path, catalog.version)
    return catalog


def load_template_registry(path: str | Path) -> StaticTemplateRegistry:
    """Load a YAML template catalog and wrap it in a registry."""
    return StaticTemplateRegistry(load_template_catalog(path).templates)
