"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    schedule = config_dict.get("schedule") or {}
    if isinstance(schedule, dict):
        disabled = []
        for tier in ("daily", "weekly", "monthly"):
            tier_config = schedule.get(tier) or {}
            if isinstance(tier_config, dict) and tier_config.get("enabled") is False:
                disabled.append(tier)
        if len(disabled) == 3:
            warning_messages.append(
                "All batch tiers are disabled; only immediate notifications will be sent"
            )
        elif disabled:
            warning_messages.append(
                f"Disabled tiers will not send digests: {', '.join(disabled)}"
            )

    notifications = config_dict.get("notifications") or {}
    if isinstance(notifications, dict):
        delay = notifications.get("dispatch_delay_seconds", 0.1)
        if isinstance(delay, (int, float)) and delay > 2:
            warning_messages.append(
                f"Long dispatch_delay_seconds ({delay}) will slow down large digest runs"
            )
        frontend_url = notifications.get("frontend_url")
        if isinstance(frontend_url, str) and "localhost" in frontend_url:
            warning_messages.append(
                f"frontend_url points at localhost ({frontend_url}); email links will not work for users"
            )

    email = config_dict.get("email") or {}
    if isinstance(email, dict) and email.get("max_retries") == 0:
        warning_messages.append("email.max_retries is 0; failed sends will not be retried")

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
