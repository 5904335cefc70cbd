"""Connectivity checks for the external model provider."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from fitcomposer.config.settings import get_settings
from fitcomposer.nlp.oracle_client import OpenAITransport


@dataclass(slots=True)
class IntegrationCheckResult:
    """Structured result describing the integration check outcome."""

    name: str
    success: bool
    message: str


async def _run_check(
    name: str,
    factory: Callable[[], Awaitable[bool]],
    success_message: str,
) -> IntegrationCheckResult:
    try:
        result = await factory()
    except Exception as exc:
        return IntegrationCheckResult(name=name, success=False, message=str(exc))

    if result:
        return IntegrationCheckResult(name=name, success=True, message=success_message)
    return IntegrationCheckResult(
        name=name,
        success=False,
        message="Service responded with non-success status.",
    )


async def check_oracle() -> IntegrationCheckResult:
    """Ping the configured model endpoint and return the result."""

    async def _ping() -> bool:
        transport = OpenAITransport(get_settings())
        try:
            return await transport.ping()
        finally:
            await transport.close()

    return await _run_check(
        name="Model endpoint",
        factory=_ping,
        success_message="Model endpoint is reachable.",
    )


async def run_all_checks() -> list[IntegrationCheckResult]:
    """Execute all integration checks concurrently."""

    return list(await asyncio.gather(check_oracle()))
