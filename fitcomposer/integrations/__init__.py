"""Integration check helpers."""

from .checks import (
    IntegrationCheckResult,
    check_oracle,
    run_all_checks,
)

__all__ = [
    "IntegrationCheckResult",
    "check_oracle",
    "run_all_checks",
]
