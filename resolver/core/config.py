"""Engine configuration: YAML loader and Pydantic model with usable defaults."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class FallbackRule(BaseModel):
    """Keyword set that routes text to a template when the classifier is down."""

    template_id: str
    keywords: list[str] = Field(min_length=1)


DEFAULT_FALLBACK_RULES = [
    FallbackRule(template_id="medical_leave", keywords=["medical", "sick", "health"]),
    FallbackRule(
        template_id="punishment_letter",
        keywords=["punishment", "disciplinary", "violation"],
    ),
    FallbackRule(
        template_id="reward_letter",
        keywords=["award", "recognition", "commendation"],
    ),
    FallbackRule(
        template_id="probation_letter",
        keywords=["probation", "trial", "evaluation"],
    ),
]


class EngineConfig(BaseModel):
    """Runtime settings for the resolution engine."""

    # External services (Ollama)
    ollama_host: str = "http://localhost:11434"
    classifier_model: str = "qwen3:8b"
    entity_model: str = "qwen3:8b"
    use_external_services: bool = True

    # Timeouts and retry
    timeout_seconds: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(default=1, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)
    health_recheck_seconds: float = Field(default=60.0, ge=0)

    # Prompting
    excerpt_chars: int = Field(default=1000, gt=0)

    # Extraction
    day_first: bool = True
    fallback_rules: list[FallbackRule] = Field(
        default_factory=lambda: [r.model_copy() for r in DEFAULT_FALLBACK_RULES]
    )


def load_engine_config(path: str | Path | None = None) -> EngineConfig:
    """Load engine settings from YAML, or return defaults when path is None."""
    if path is None:
        return EngineConfig()
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return EngineConfig.model_validate(raw)
