"""Structured alerts with severity levels.

Usage::

    from utils.alert import Alert, AlertSeverity, send_alert

    # Unknown tokens piling up, sent silently
    send_alert(Alert(AlertSeverity.MEDIUM, "12 withdrawals skipped", "withdrawals_meter"))

    # Storage outage, sends with notification sound
    send_alert(Alert(AlertSeverity.HIGH, "Withdrawals storage unreachable", "withdrawals_meter"))

Severity guide:
    LOW       — informational updates (silent)
    MEDIUM    — skipped items, degraded state (silent)
    HIGH      — storage outages that abort a metering run (loud)
    CRITICAL  — nothing metered at all (loud)

Override defaults with ``silent=True/False``. ``metadata`` carries extra
context for logs and does not affect the Telegram message.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from utils.logging import get_logger
from utils.telegram import send_telegram_message

logger = get_logger("utils.alert")

_SEVERITY_EMOJI = {
    "LOW": "ℹ️",
    "MEDIUM": "⚠️",
    "HIGH": "🚨",
    "CRITICAL": "🔴",
}

_SEVERITY_SILENT_DEFAULT = {
    "LOW": True,
    "MEDIUM": True,
    "HIGH": False,
    "CRITICAL": False,
}


class AlertSeverity(Enum):
    """Alert severity levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class Alert:
    """Immutable alert with severity, message, protocol, and optional metadata."""

    severity: AlertSeverity
    message: str
    protocol: str
    metadata: dict[str, Any] = field(default_factory=dict)


def send_alert(
    alert: Alert,
    *,
    silent: bool | None = None,
    plain_text: bool = False,
) -> None:
    """Send an alert via Telegram with an emoji prefix and severity-based defaults.

    Args:
        alert: The Alert to send.
        silent: Override notification silencing. None uses the severity default
                (LOW/MEDIUM=silent, HIGH/CRITICAL=loud).
        plain_text: If True, send without Markdown formatting.
    """
    emoji = _SEVERITY_EMOJI[alert.severity.value]
    message = f"{emoji} {alert.message}"

    if silent is None:
        silent = _SEVERITY_SILENT_DEFAULT[alert.severity.value]

    logger.info("%s alert for %s: %s %s", alert.severity.value, alert.protocol, alert.message, alert.metadata or "")
    send_telegram_message(message, alert.protocol, silent, plain_text)
