"""Realtime Notifier Interface

Defines the contract for publishing credit updates to connected observers.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from src.domain.base import utcnow


class CreditsUpdatedEvent(BaseModel):
    """Outbound event published after a credit mutation commits"""

    user_id: str
    credits_used: int
    credits_limit: int
    purchased_balance: int
    reason: str
    occurred_at: datetime = Field(default_factory=utcnow)
    ledger_entry_id: Optional[int] = None


class RealtimeNotifier(ABC):
    """
    Abstract notifier for credit updates

    Delivery is best effort: publish is only called after the primary
    transaction committed and callers must not let a failure propagate.

    Implementations can publish via:
    - In-process queues (SSE / websocket fan-out)
    - Webhook (HTTP POST)
    - Logging
    """

    @abstractmethod
    async def publish(self, event: CreditsUpdatedEvent) -> bool:
        """
        Publish a credit update

        Args:
            event: CreditsUpdatedEvent to fan out

        Returns:
            True if delivered to at least one channel, False otherwise
        """
        pass
