"""SQLAlchemy implementation of LedgerEntryRepository

Append-only persistence for LedgerEntry rows.
"""

from typing import List
from sqlalchemy import func, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.domain.ledger_entry import LedgerEntry


class SqlAlchemyLedgerEntryRepository(LedgerEntryRepository):
    """
    SQLAlchemy implementation of LedgerEntryRepository

    Features:
    - Pure inserts, no locking on unrelated users
    - Newest-first ordering broken by id for entries sharing a timestamp
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Insert a new ledger entry

        Args:
            entry: LedgerEntry to persist

        Returns:
            Created LedgerEntry with generated ID
        """
        self.session.add(entry)
        await self.session.flush()
        await self.session.refresh(entry)
        return entry

    async def get_by_user_id(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> tuple[List[LedgerEntry], int]:
        count_stmt = select(func.count()).select_from(LedgerEntry).where(LedgerEntry.user_id == user_id)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar_one()

        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def list_newest_first(self, user_id: str) -> List[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_balance_after(self, entry_id: int, balance_after: int) -> None:
        stmt = (
            update(LedgerEntry)
            .where(LedgerEntry.id == entry_id)
            .values(balance_after=balance_after)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)

    async def list_user_ids(self) -> List[str]:
        stmt = select(LedgerEntry.user_id).distinct().order_by(LedgerEntry.user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
