"""Configuration helpers for the per-provider client-side throttles."""

import logging
import os
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

_SUFFIXES = {
    "_RATE_WINDOW": "window_seconds",
    "_RATE_MAX": "max_requests",
    "_MIN_INTERVAL": "min_interval_seconds",
}


def load_custom_rate_limits() -> Dict[str, Dict[str, float]]:
    """Load custom rate limits from environment variables.

    Format: <PROVIDER>_RATE_WINDOW, <PROVIDER>_RATE_MAX, <PROVIDER>_MIN_INTERVAL
    Where PROVIDER is the provider name in uppercase.

    Example:
        GROQ_RATE_WINDOW=60
        GROQ_RATE_MAX=5
        GEMINI_MIN_INTERVAL=10
    """
    custom_limits: Dict[str, Dict[str, float]] = {}

    for env_var in os.environ:
        for suffix, field in _SUFFIXES.items():
            if not env_var.endswith(suffix):
                continue
            provider = env_var[: -len(suffix)].lower().replace("_", "-")
            if not provider:
                continue

            raw_value = os.environ[env_var]
            try:
                value = int(raw_value) if field == "max_requests" else float(raw_value)
            except ValueError:
                logger.warning(
                    "Invalid rate limit value for %s: %s", env_var, raw_value
                )
                continue
            custom_limits.setdefault(provider, {})[field] = value
            break

    return custom_limits


def describe_rate_limits(limits: Dict[str, Dict[str, float]]) -> Dict[str, Any]:
    """Summarise the throttle configuration in human terms."""
    described: Dict[str, Any] = {}
    for provider, provider_limits in limits.items():
        window = provider_limits.get("window_seconds", 0)
        max_requests = provider_limits.get("max_requests", 0)
        min_interval = provider_limits.get("min_interval_seconds", 0)
        described[provider] = {
            "window_seconds": window,
            "max_requests": max_requests,
            "min_interval_seconds": min_interval,
            "summary": (
                f"{max_requests} requests per {window:g}s"
                + (f", at least {min_interval:g}s apart" if min_interval else "")
            ),
        }
    return described


def validate_rate_limits(limits: Dict[str, Dict[str, float]]) -> List[str]:
    """Validate rate limit configuration and return any warnings."""
    warnings = []

    for provider, provider_limits in limits.items():
        window = provider_limits.get("window_seconds", 0)
        max_requests = provider_limits.get("max_requests", 0)
        min_interval = provider_limits.get("min_interval_seconds", 0)

        if window <= 0:
            warnings.append(f"{provider}: window must be positive ({window})")
        if max_requests < 1:
            warnings.append(f"{provider}: max requests too low ({max_requests})")
        if max_requests > 1000:
            warnings.append(f"{provider}: max requests unusually high ({max_requests})")
        if min_interval < 0:
            warnings.append(f"{provider}: negative minimum interval ({min_interval})")

        # A spacing that cannot fit max_requests calls inside one window
        if window > 0 and min_interval and min_interval * max_requests > window:
            warnings.append(
                f"{provider}: min interval × max requests exceeds the window "
                "(capacity can never be reached)"
            )

    return warnings


def effective_rate_limits(
    base: Dict[str, Dict[str, float]]
) -> Dict[str, Dict[str, float]]:
    """Merge environment overrides into ``base``.

    Providers that only appear in the environment start from a 60 second
    window with no request cap.
    """
    merged = {provider: dict(values) for provider, values in base.items()}
    for provider, overrides in load_custom_rate_limits().items():
        target = merged.setdefault(
            provider,
            {"window_seconds": 60.0, "max_requests": 0, "min_interval_seconds": 0.0},
        )
        target.update(overrides)

    for warning in validate_rate_limits(merged):
        logger.warning("Rate limit configuration: %s", warning)
    return merged
