from reliable_mediator.ports.background_worker import IBackgroundWorker
from reliable_mediator.ports.inbox import IInboxStore, InboxRecord
from reliable_mediator.ports.messaging import IMessagePublisher
from reliable_mediator.ports.middleware import IMiddleware, IPostProcessor
from reliable_mediator.ports.outbox import IOutboxStore, OutboxRecord
from reliable_mediator.ports.sagas import ACTIVE_SAGA_STATUSES, ISagaStore, SagaState, SagaStatus
from reliable_mediator.ports.scheduling import IScheduledMessageStore, ScheduledMessageRecord
from reliable_mediator.ports.serializer import ISerializer
from reliable_mediator.ports.unit_of_work import UnitOfWork

__all__ = [
    "ACTIVE_SAGA_STATUSES",
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
]
