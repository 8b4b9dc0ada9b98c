"""Generative-text port used by the rationale and narration stages.

Pipeline stages depend on :class:`TextGenerationPort` only. The production
adapter runs an OpenAI agent; tests substitute a scripted double. Every failure
surfaces as a :class:`TextGenerationError` so callers can fall back uniformly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from agents import Agent, ModelSettings, RunConfig, Runner
from agents.exceptions import AgentsException
from openai import APIConnectionError, APIStatusError, APITimeoutError

from .config import Settings, get_settings
from .response_parser import ParseError, parse_object_array
from .telemetry import emit_event

logger = logging.getLogger(__name__)

_BLOCKED_CODES = {"content_filter", "content_policy_violation"}


class TextGenerationError(RuntimeError):
    """A generative-text call produced nothing usable."""

    def __init__(self, message: str, *, code: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable


class TextGenerationTimeout(TextGenerationError):
    def __init__(self, message: str = "Text generation timed out") -> None:
        super().__init__(message, code="TIMEOUT", retryable=True)


class TextGenerationStatusError(TextGenerationError):
    def __init__(self, message: str, *, status_code: Optional[int]) -> None:
        retryable = status_code is None or status_code == 429 or status_code >= 500
        super().__init__(message, code="HTTP_STATUS", retryable=retryable)
        self.status_code = status_code


class TextGenerationBlocked(TextGenerationError):
    def __init__(self, message: str = "Response blocked by content filter") -> None:
        super().__init__(message, code="CONTENT_BLOCKED", retryable=False)


@dataclass(frozen=True)
class TextGenerationRequest:
    instructions: str
    prompt: str
    temperature: float = 0.7
    max_output_tokens: int = 4096
    stage: str = "text"


class TextGenerationPort(Protocol):
    async def generate(self, request: TextGenerationRequest) -> str:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RetryPolicy":
        resolved = settings or get_settings()
        return cls(
            max_attempts=resolved.text_max_attempts,
            backoff_seconds=resolved.text_backoff_seconds,
            timeout_seconds=resolved.text_timeout_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        return self.backoff_seconds * (2 ** (attempt - 1))


def _supports_temperature(model: str) -> bool:
    # Reasoning model families reject sampling parameters.
    return not model.startswith(("gpt-5", "o1", "o3", "o4"))


_AGENT_CACHE: dict[tuple[str, str], Agent[Any]] = {}


def _text_agent(model: str, stage: str, instructions: str) -> Agent[Any]:
    key = (model, stage)
    if key not in _AGENT_CACHE:
        _AGENT_CACHE[key] = Agent[Any](
            name=f"Learning Path {stage.title()} Writer",
            instructions=instructions,
            model=model,
            tools=[],
            model_settings=ModelSettings(store=False),
        )
    return _AGENT_CACHE[key]


class AgentTextGenerator:
    """Runs each request through a cached OpenAI agent."""

    def __init__(self, model: str) -> None:
        self._model = model

    def _model_settings(self, request: TextGenerationRequest) -> ModelSettings:
        if _supports_temperature(self._model):
            return ModelSettings(
                store=False,
                temperature=request.temperature,
                max_tokens=request.max_output_tokens,
            )
        return ModelSettings(store=False, max_tokens=request.max_output_tokens)

    async def generate(self, request: TextGenerationRequest) -> str:
        try:
            agent = _text_agent(self._model, request.stage, request.instructions)
            result = await Runner.run(
                agent,
                request.prompt,
                context=None,
                run_config=RunConfig(model_settings=self._model_settings(request)),
            )
        except APITimeoutError as exc:
            raise TextGenerationTimeout() from exc
        except APIConnectionError as exc:
            raise TextGenerationStatusError(f"Connection failed: {exc}", status_code=None) from exc
        except APIStatusError as exc:
            if getattr(exc, "code", None) in _BLOCKED_CODES:
                raise TextGenerationBlocked(str(exc)) from exc
            raise TextGenerationStatusError(str(exc), status_code=exc.status_code) from exc
        except AgentsException as exc:
            raise TextGenerationError(str(exc), code="INVALID_RESPONSE") from exc
        except Exception as exc:  # noqa: BLE001
            raise TextGenerationError(f"Text generation failed: {exc}", code="UNKNOWN") from exc

        output = result.final_output
        if output is None:
            raise TextGenerationBlocked("Model returned no content")
        return str(output)


class DisabledTextGenerator:
    """Stand-in used when generation is switched off; always forces the fallback."""

    async def generate(self, request: TextGenerationRequest) -> str:
        raise TextGenerationError("Text generation is disabled", code="DISABLED")


def get_text_generator(settings: Optional[Settings] = None) -> TextGenerationPort:
    resolved = settings or get_settings()
    if resolved.text_generation_mode == "off" or not resolved.openai_api_key:
        logger.info("Text generation disabled; deterministic fallbacks will be used")
        return DisabledTextGenerator()
    return AgentTextGenerator(resolved.text_model)


async def request_structured_array(
    port: TextGenerationPort,
    request: TextGenerationRequest,
    *,
    expected_length: int,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> List[Dict[str, Any]]:
    """Call ``port`` with timeout and backoff, returning the parsed array.

    Raises :class:`TextGenerationError` once a non-retryable failure occurs or
    the attempt budget is spent.
    """
    resolved = policy or RetryPolicy()
    last_error: Optional[TextGenerationError] = None

    for attempt in range(1, resolved.max_attempts + 1):
        try:
            raw = await asyncio.wait_for(port.generate(request), timeout=resolved.timeout_seconds)
        except asyncio.TimeoutError:
            error: TextGenerationError = TextGenerationTimeout(
                f"No response within {resolved.timeout_seconds:g}s"
            )
        except TextGenerationError as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s generation attempt %d raised unexpectedly", request.stage, attempt)
            error = TextGenerationError(f"Text generation failed: {exc}", code="UNKNOWN")
        else:
            try:
                return parse_object_array(raw, expected_length=expected_length)
            except ParseError as exc:
                error = TextGenerationError(str(exc), code="INVALID_RESPONSE")

        last_error = error
        emit_event(
            "text_generation_attempt_failed",
            stage=request.stage,
            attempt=attempt,
            code=error.code,
            retryable=error.retryable,
        )
        if not error.retryable:
            raise error
        if attempt < resolved.max_attempts:
            delay = resolved.delay_for(attempt)
            logger.warning(
                "%s generation attempt %d failed (%s); retrying in %.1fs",
                request.stage,
                attempt,
                error.code,
                delay,
            )
            await sleep(delay)

    raise TextGenerationError(
        f"Gave up after {resolved.max_attempts} attempts: {last_error}",
        code="MAX_RETRIES_EXCEEDED",
    ) from last_error


__all__ = [
    "AgentTextGenerator",
    "DisabledTextGenerator",
    "RetryPolicy",
    "TextGenerationBlocked",
    "TextGenerationError",
    "TextGenerationPort",
    "TextGenerationRequest",
    "TextGenerationStatusError",
    "TextGenerationTimeout",
    "get_text_generator",
    "request_structured_array",
]
