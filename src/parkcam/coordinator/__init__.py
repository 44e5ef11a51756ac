"""Coordinator client module for check and update calls."""

from parkcam.coordinator.client import CoordinatorClient
from parkcam.coordinator.models import NotifyPayload, PollSignal

__all__ = ["CoordinatorClient", "NotifyPayload", "PollSignal"]
