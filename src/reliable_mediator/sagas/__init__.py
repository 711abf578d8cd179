"""Saga state tracking and stuck-saga recovery."""

from .coordinator import SagaCoordinator
from .worker import SagaRecoveryWorker

__all__ = ["SagaCoordinator", "SagaRecoveryWorker"]
