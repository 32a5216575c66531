"""Ledger Entry Repository Interface

Defines the contract of the append-only credit ledger store.
"""

from abc import ABC, abstractmethod
from typing import List
from src.domain.ledger_entry import LedgerEntry


class LedgerEntryRepository(ABC):
    """
    Repository interface for LedgerEntry persistence

    Entries are immutable and append-only. The only in-place write is
    ``update_balance_after``, reserved for the administrative recomputation.
    """

    @abstractmethod
    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Insert a new ledger entry

        Args:
            entry: LedgerEntry to persist

        Returns:
            Created LedgerEntry with generated ID
        """
        pass

    @abstractmethod
    async def get_by_user_id(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> tuple[List[LedgerEntry], int]:
        """
        Retrieve entries of a user, newest first

        Returns:
            Tuple of (entries, total count)
        """
        pass

    @abstractmethod
    async def list_newest_first(self, user_id: str) -> List[LedgerEntry]:
        """
        All entries of a user, newest first (created_at DESC, id DESC)

        Used by the recomputation walk.
        """
        pass

    @abstractmethod
    async def update_balance_after(self, entry_id: int, balance_after: int) -> None:
        """Rewrite the balance snapshot of one entry"""
        pass

    @abstractmethod
    async def list_user_ids(self) -> List[str]:
        """Distinct users owning at least one entry"""
        pass
