"""RequestContext — ambient metadata that travels with one dispatch."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ..utils import default_dict_factory

if TYPE_CHECKING:
    from ..ports.unit_of_work import UnitOfWork


@dataclass(frozen=True)
class RequestContext:
    """Per-call metadata handed to middleware, handlers and post-processors.

    ``unit_of_work`` is set by the mediator around the handler call; it is
    ``None`` in middleware that runs outside the transactional core.
    """

    correlation_id: str | None = None
    idempotency_key: str | None = None
    user_id: str | None = None
    tenant_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = field(default_factory=default_dict_factory)
    unit_of_work: UnitOfWork | None = None

    def with_unit_of_work(self, uow: UnitOfWork) -> RequestContext:
        """Return a copy bound to *uow*."""
        return dataclasses.replace(self, unit_of_work=uow)

    def with_correlation_id(self, correlation_id: str) -> RequestContext:
        return dataclasses.replace(self, correlation_id=correlation_id)
