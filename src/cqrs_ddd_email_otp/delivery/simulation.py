"""Simulation mode: surface the code in the logs instead of sending it.

Non-production only. Enabled per authenticator with ``simulationMode=true``.
"""

from __future__ import annotations

import json
import logging

from .message import DeliveryAttempt, EmailMessage

logger = logging.getLogger(__name__)

SIMULATION_PROVIDER = "simulation"


def simulate_delivery(message: EmailMessage) -> DeliveryAttempt:
    """Emit one JSON log entry carrying the recipient and the code."""
    entry = {
        "event": "email_otp_simulated",
        "to": message.to,
        "subject": message.subject,
        "code": message.template_data.get("code"),
        "ttl": message.template_data.get("ttl"),
    }
    logger.warning(json.dumps(entry))
    return DeliveryAttempt.sent(SIMULATION_PROVIDER)


__all__: list[str] = ["simulate_delivery", "SIMULATION_PROVIDER"]
