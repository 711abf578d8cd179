"""reliable-mediator: reliable-messaging guarantees for an async request pipeline.

* **Inbox**: a keyed request runs to success at most once; duplicates get
  the cached response.
* **Outbox**: notifications of a successful request are stored in the
  request's unit of work and published at least once by a background loop.
* **Sagas**: lifecycle tracking for multi-step operations, with a scan for
  sagas that stopped moving.
* **Scheduling**: requests stored now and sent back through the pipeline
  when due.

All four depend only on the store protocols in :mod:`reliable_mediator.ports`.
"""

from __future__ import annotations

from .config import (
    BackoffOptions,
    InboxOptions,
    OutboxOptions,
    ReliableMessagingOptions,
    SagaOptions,
    SchedulingOptions,
)
from .correlation import (
    correlation_scope,
    generate_correlation_id,
    get_causation_id,
    get_context_vars,
    get_correlation_id,
    set_causation_id,
    set_correlation_id,
)
from .inbox import InboxMiddleware, InboxPurgeService, InboxPurgeWorker
from .instrumentation import (
    HookRegistration,
    HookRegistry,
    InstrumentationHook,
    get_hook_registry,
    set_hook_registry,
)
from .outbox import OutboxDispatcher, OutboxPostProcessor, OutboxWorker
from .pipeline import (
    HandlerRegistry,
    HasNotifications,
    IdempotentRequest,
    Mediator,
    Notification,
    Request,
    RequestContext,
    RequestHandler,
    build_pipeline,
)
from .ports import (
    IBackgroundWorker,
    IInboxStore,
    IMessagePublisher,
    IMiddleware,
    InboxRecord,
    IOutboxStore,
    IPostProcessor,
    ISagaStore,
    IScheduledMessageStore,
    ISerializer,
    OutboxRecord,
    SagaState,
    SagaStatus,
    ScheduledMessageRecord,
    UnitOfWork,
)
from .primitives import (
    BackoffPolicy,
    ConfigurationError,
    DuplicateRecordError,
    HandlerNotFoundError,
    HandlerRegistrationError,
    IClock,
    InvalidSagaTransitionError,
    MediatorError,
    PersistenceError,
    ReliableMessagingError,
    RequestResult,
    ResultError,
    SagaError,
    SagaNotFoundError,
    SerializationError,
    StoreError,
    SystemClock,
)
from .sagas import SagaCoordinator, SagaRecoveryWorker
from .scheduling import (
    ScheduledMessageDispatcher,
    ScheduledMessageService,
    ScheduledMessageWorker,
)
from .serialization import JsonSerializer, MessageTypeRegistry
from .workers import BatchSummary, PollingWorker

__version__ = "0.1.0"

__all__ = [
    # Config
    "BackoffOptions",
    "InboxOptions",
    "OutboxOptions",
    "ReliableMessagingOptions",
    "SagaOptions",
    "SchedulingOptions",
    # Correlation
    "correlation_scope",
    "generate_correlation_id",
    "get_causation_id",
    "get_context_vars",
    "get_correlation_id",
    "set_causation_id",
    "set_correlation_id",
    # Inbox
    "InboxMiddleware",
    "InboxPurgeService",
    "InboxPurgeWorker",
    # Instrumentation
    "HookRegistration",
    "HookRegistry",
    "InstrumentationHook",
    "get_hook_registry",
    "set_hook_registry",
    # Outbox
    "OutboxDispatcher",
    "OutboxPostProcessor",
    "OutboxWorker",
    # Pipeline
    "HandlerRegistry",
    "HasNotifications",
    "IdempotentRequest",
    "Mediator",
    "Notification",
    "Request",
    "RequestContext",
    "RequestHandler",
    "build_pipeline",
    # Ports
    "IBackgroundWorker",
    "IInboxStore",
    "IMessagePublisher",
    "IMiddleware",
    "IOutboxStore",
    "IPostProcessor",
    "ISagaStore",
    "IScheduledMessageStore",
    "ISerializer",
    "InboxRecord",
    "OutboxRecord",
    "SagaState",
    "SagaStatus",
    "ScheduledMessageRecord",
    "UnitOfWork",
    # Primitives
    "BackoffPolicy",
    "ConfigurationError",
    "DuplicateRecordError",
    "HandlerNotFoundError",
    "HandlerRegistrationError",
    "IClock",
    "InvalidSagaTransitionError",
    "MediatorError",
    "PersistenceError",
    "ReliableMessagingError",
    "RequestResult",
    "ResultError",
    "SagaError",
    "SagaNotFoundError",
    "SerializationError",
    "StoreError",
    "SystemClock",
    # Sagas
    "SagaCoordinator",
    "SagaRecoveryWorker",
    # Scheduling
    "ScheduledMessageDispatcher",
    "ScheduledMessageService",
    "ScheduledMessageWorker",
    # Serialization
    "JsonSerializer",
    "MessageTypeRegistry",
    # Workers
    "BatchSummary",
    "PollingWorker",
]
