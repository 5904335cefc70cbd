"""Client for structured generation via the configured LLM provider."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, TypeVar

import httpx
from openai import (
    APIConnectionError,
    APIError,
    APIResponseValidationError,
    APIStatusError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from pydantic import BaseModel, ValidationError

from fitcomposer.config.settings import Settings
from fitcomposer.errors import OracleError, SchemaViolation
from fitcomposer.metrics.prometheus_exporter import oracle_requests_total, oracle_retries_total
from fitcomposer.nlp.retry import RetryPolicy, RetryState

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_TRANSIENT_STATUS_CODES = {408, 409, 429}


@dataclass(frozen=True, slots=True)
class OracleRequest:
    """A single structured-generation request."""

    system_instruction: str
    user_instruction: str
    response_schema: dict[str, Any]
    temperature: float
    schema_name: str = "outfit"


class OracleTransport(Protocol):
    """Sends one request to the model and returns its raw JSON text."""

    async def complete(self, request: OracleRequest) -> str: ...


class OpenAITransport:
    """Thin transport over an OpenAI-compatible chat completions endpoint."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        if client is None:
            if not settings.oracle_api_key:
                raise RuntimeError("Model API key is not configured.")
            client = AsyncOpenAI(
                api_key=settings.oracle_api_key,
                base_url=settings.oracle_base_url.rstrip("/"),
                # Retries are owned by RetryPolicy.
                max_retries=0,
                http_client=httpx.AsyncClient(timeout=settings.request_timeout),
            )
        self._client = client

    async def complete(self, request: OracleRequest) -> str:
        """Send ``request`` and return the message content, mapping failures to ``OracleError``."""

        try:
            response = await self._client.chat.completions.create(
                model=self._settings.oracle_model,
                messages=[
                    {"role": "system", "content": request.system_instruction},
                    {"role": "user", "content": request.user_instruction},
                ],
                temperature=request.temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": request.schema_name,
                        "schema": request.response_schema,
                        "strict": False,
                    },
                },
            )
        except APIConnectionError as exc:
            raise OracleError(f"Model endpoint unreachable: {exc}") from exc
        except (RateLimitError, InternalServerError) as exc:
            raise OracleError(
                f"Model endpoint overloaded ({exc.status_code}): {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except APIStatusError as exc:
            transient = exc.status_code in _TRANSIENT_STATUS_CODES or exc.status_code >= 500
            raise OracleError(
                f"Model endpoint returned {exc.status_code}: {exc.message}",
                status_code=exc.status_code,
                transient=transient,
            ) from exc
        except APIResponseValidationError as exc:
            raise SchemaViolation(f"Model endpoint returned an unreadable body: {exc.message}") from exc
        except APIError as exc:
            raise OracleError(f"Model endpoint request failed: {exc.message}", transient=False) from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def ping(self) -> bool:
        """Return ``True`` if the upstream service responds to a model listing call."""

        models = await self._client.models.list()
        return bool(models.data)

    async def close(self) -> None:
        """Release HTTP resources."""

        await self._client.close()


def parse_structured(text: str, response_model: type[ModelT]) -> ModelT:
    """Parse model output into ``response_model`` or raise ``SchemaViolation``."""

    if not text or not text.strip():
        raise SchemaViolation("Model returned an empty response.", raw_text=text)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaViolation(f"Model response is not valid JSON: {exc.msg}", raw_text=text) from exc
    if not isinstance(payload, dict):
        raise SchemaViolation("Model response is not a JSON object.", raw_text=text)
    try:
        return response_model.model_validate(payload)
    except ValidationError as exc:
        raise SchemaViolation(
            f"Model response does not match {response_model.__name__}: "
            f"{exc.error_count()} validation error(s)",
            raw_text=text,
        ) from exc


class OracleClient:
    """Runs structured requests through the retry policy and validates their shape."""

    def __init__(
        self,
        transport: OracleTransport,
        retry_policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @property
    def transport(self) -> OracleTransport:
        return self._transport

    async def generate(self, request: OracleRequest, response_model: type[ModelT]) -> ModelT:
        """Return the model's answer to ``request`` parsed as ``response_model``."""

        text = await self._retry_policy.run(
            lambda: self._attempt(request),
            on_retry=self._log_retry,
            sleep=self._sleep,
        )
        try:
            return parse_structured(text, response_model)
        except SchemaViolation:
            oracle_requests_total.labels(outcome="schema_violation").inc()
            logger.warning("Model response for %s failed schema validation.", request.schema_name)
            raise

    async def _attempt(self, request: OracleRequest) -> str:
        try:
            text = await self._transport.complete(request)
        except OracleError as exc:
            oracle_requests_total.labels(outcome="transient" if exc.transient else "error").inc()
            raise
        oracle_requests_total.labels(outcome="ok").inc()
        return text

    def _log_retry(self, state: RetryState) -> None:
        oracle_retries_total.inc()
        logger.warning(
            "Model request failed (attempt %d), retrying in %.0fms: %s",
            state.attempt,
            state.next_delay * 1000,
            state.last_error,
        )
