"""ListLedgerEntries Use Case"""

from libs.result import Result, Return, Error
from src.app.errors import ErrorCode
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from .dtos import LedgerPageDTO
from .support import to_ledger_entry_dto

MAX_PAGE_SIZE = 100


class ListLedgerEntries:
    """
    Use Case: Page through a user's ledger, newest first

    limit is clamped to [1, 100], offset to >= 0.
    """

    def __init__(self, user_repo: UserAccountRepository, ledger_repo: LedgerEntryRepository):
        self.user_repo = user_repo
        self.ledger_repo = ledger_repo

    async def execute(self, user_id: str, limit: int = 20, offset: int = 0) -> Result[LedgerPageDTO]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)
        try:
            account = await self.user_repo.get_by_id(user_id)
            if not account:
                return Return.err(Error(code=ErrorCode.USER_NOT_FOUND, message=f"User {user_id} not found"))

            entries, total = await self.ledger_repo.get_by_user_id(user_id, limit=limit, offset=offset)

            return Return.ok(
                LedgerPageDTO(
                    user_id=user_id,
                    entries=[to_ledger_entry_dto(entry) for entry in entries],
                    total=total,
                    limit=limit,
                    offset=offset,
                )
            )

        except Exception as e:
            return Return.err(
                Error(
                    code="LIST_LEDGER_FAILED",
                    message="Failed to list ledger entries",
                    reason=str(e),
                )
            )
