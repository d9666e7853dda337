"""Ollama structured-output calls with timeout, retry and failure capture."""

import asyncio
import logging
from typing import TypeVar

import httpx
import ollama
from pydantic import BaseModel, ValidationError

from resolver.agents.health import ServiceHealth
from resolver.agents.models import AdapterFailure
from resolver.core.config import EngineConfig

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_TRANSIENT_ERRORS = (asyncio.TimeoutError, ConnectionError, httpx.TransportError)


def make_client(config: EngineConfig) -> ollama.AsyncClient:
    """Async Ollama client bound to the configured host and timeout."""
    return ollama.AsyncClient(host=config.ollama_host, timeout=config.timeout_seconds)


async def chat_structured(
    client: ollama.AsyncClient,
    *,
    service: str,
    model: str,
    system: str,
    prompt: str,
    output_model: type[M],
    config: EngineConfig,
    health: ServiceHealth | None = None,
) -> M | AdapterFailure:
    """Ask `model` for JSON matching `output_model`.

    Returns the validated model, or an AdapterFailure describing why not.
    Transient errors are retried up to `config.retry_attempts` times.
    """
    if not config.use_external_services:
        return AdapterFailure(service=service, reason="external services disabled")
    if health is not None and not health.should_attempt():
        return AdapterFailure(service=service, reason="service marked unavailable")

    for attempt in range(1, config.retry_attempts + 1):
        try:
            response = await asyncio.wait_for(
                client.chat(
                    model=model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    format=output_model.model_json_schema(),
                    options={"temperature": 0},
                    think=False,
                ),
                timeout=config.timeout_seconds,
            )
        except _TRANSIENT_ERRORS as exc:
            reason = "timeout" if isinstance(exc, asyncio.TimeoutError) else f"transport error: {exc}"
            if attempt < config.retry_attempts:
                wait = config.retry_delay * 2**attempt
                logger.warning(
                    "%s request failed (attempt %d/%d): %s — retrying in %.1fs",
                    service, attempt, config.retry_attempts, reason, wait,
                )
                await asyncio.sleep(wait)
                continue
            return _fail(service, reason, health)
        except (ollama.ResponseError, ollama.RequestError, httpx.HTTPError) as exc:
            return _fail(service, f"service error: {exc}", health)
        except Exception as exc:
            return _fail(service, f"unexpected error: {exc}", health)

        raw = response.message.content or ""
        try:
            parsed = output_model.model_validate_json(raw)
        except ValidationError as exc:
            if health is not None:
                health.mark_ok()
            logger.warning("%s returned malformed payload: %s", service, exc.errors()[:1])
            return AdapterFailure(service=service, reason="malformed response")

        if health is not None:
            health.mark_ok()
        return parsed

    # Unreachable with retry_attempts >= 1
    return _fail(service, "no attempts made", health)


def _fail(service: str, reason: str, health: ServiceHealth | None) -> AdapterFailure:
    logger.warning("%s unavailable (%s) — falling back to local analysis", service, reason)
    if health is not None:
        health.mark_failed()
    return AdapterFailure(service=service, reason=reason)
