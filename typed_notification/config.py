"""Settings for a notification center, loadable from the environment."""

from __future__ import annotations

import os
from typing import Mapping

from pydantic import BaseModel

from typed_notification.domain.models import HandlerErrorPolicy
from typed_notification.logging_config import configure_logging

ENV_PREFIX = "TYPED_NOTIFICATION_"

_TRUTHY = {"1", "true", "yes", "on"}


class CenterSettings(BaseModel):
    """Behaviour knobs for ``NotificationCenter``.

    ``handler_errors`` decides what happens when an inline handler raises:
    ``propagate`` re-raises to the poster, ``isolate`` logs and moves on to
    the next subscriber.
    """

    handler_errors: HandlerErrorPolicy = HandlerErrorPolicy.PROPAGATE
    log_level: str = "INFO"
    json_logs: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CenterSettings:
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        policy = env.get(f"{ENV_PREFIX}HANDLER_ERRORS")
        if policy:
            values["handler_errors"] = HandlerErrorPolicy(policy.strip().lower())

        level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
        if level:
            values["log_level"] = level.strip().upper()

        json_logs = env.get(f"{ENV_PREFIX}JSON_LOGS")
        if json_logs is not None:
            values["json_logs"] = json_logs.strip().lower() in _TRUTHY

        return cls(**values)

    def apply_logging(self) -> None:
        """Configure structlog from these settings."""
        configure_logging(level=self.log_level, json_output=self.json_logs)
