"""Options for the four reliable-messaging patterns.

Each pattern is toggled and tuned independently. All values are in seconds
unless the name says otherwise.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .primitives.backoff import BackoffPolicy


class _Options(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class BackoffOptions(_Options):
    """Exponential backoff between retry attempts."""

    base: float = Field(default=1.0, gt=0)
    cap: float = Field(default=300.0, gt=0)

    @model_validator(mode="after")
    def _cap_not_below_base(self) -> BackoffOptions:
        if self.cap < self.base:
            raise ValueError("backoff cap must be >= base")
        return self

    def policy(self) -> BackoffPolicy:
        return BackoffPolicy(base=self.base, cap=self.cap)


class InboxOptions(_Options):
    enabled: bool = True
    max_retries: int = Field(default=3, ge=0)
    ttl: float = Field(default=7 * 24 * 3600.0, gt=0)
    purge_batch_size: int = Field(default=100, gt=0)
    purge_interval: float = Field(default=3600.0, gt=0)
    backoff: BackoffOptions = Field(default_factory=BackoffOptions)


class OutboxOptions(_Options):
    enabled: bool = True
    batch_size: int = Field(default=100, gt=0)
    poll_interval: float = Field(default=5.0, gt=0)
    max_retries: int = Field(default=5, gt=0)
    backoff: BackoffOptions = Field(default_factory=BackoffOptions)


class SchedulingOptions(_Options):
    enabled: bool = True
    batch_size: int = Field(default=100, gt=0)
    poll_interval: float = Field(default=5.0, gt=0)
    max_retries: int = Field(default=3, gt=0)
    backoff: BackoffOptions = Field(default_factory=BackoffOptions)


class SagaOptions(_Options):
    enabled: bool = True
    batch_size: int = Field(default=50, gt=0)
    poll_interval: float = Field(default=60.0, gt=0)
    stuck_threshold: float = Field(default=1800.0, gt=0)


class ReliableMessagingOptions(_Options):
    """Aggregate of the per-pattern options."""

    inbox: InboxOptions = Field(default_factory=InboxOptions)
    outbox: OutboxOptions = Field(default_factory=OutboxOptions)
    scheduling: SchedulingOptions = Field(default_factory=SchedulingOptions)
    sagas: SagaOptions = Field(default_factory=SagaOptions)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ReliableMessagingOptions:
        """Build options from plain configuration data (parsed YAML, env dict…).

        Raises:
            pydantic.ValidationError: on unknown keys or out-of-range values.
        """
        return cls.model_validate(dict(data))
