"""
Module: token_kernel.selectors.token_selector
Responsibility: Read access to token metadata, balances, allowances, the
    public event log, the recorded notifier and migration history, plus the
    supply conservation check.
Architecture position: Kernel > Selectors.

Failure modes:
    - TokenNotFoundError from token_info() for an unknown id.
    - SupplyInvariantError from verify_supply_conservation() on drift.
"""

from uuid import UUID

from sqlalchemy import select

from token_kernel.domain.dtos import LedgerEventInfo, MigrationReceipt, TokenInfo
from token_kernel.exceptions import SupplyInvariantError, TokenNotFoundError
from token_kernel.logging_config import get_logger
from token_kernel.models.allowance import Allowance
from token_kernel.models.balance import AccountBalance
from token_kernel.models.ledger_event import LedgerEvent, LedgerEventType
from token_kernel.models.migration import MigrationRecord
from token_kernel.models.token_state import TokenState
from token_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.token")


class TokenSelector(BaseSelector[TokenState]):
    """Queries scoped to one token."""

    def __init__(self, session, token_id: UUID):
        super().__init__(session)
        self.token_id = token_id

    def _state(self) -> TokenState:
        state = self.session.get(TokenState, self.token_id)
        if state is None:
            raise TokenNotFoundError(str(self.token_id))
        return state

    def token_info(self) -> TokenInfo:
        return TokenInfo.from_model(self._state())

    def balance_of(self, account: str) -> int:
        amount = self.session.execute(
            select(AccountBalance.amount).where(
                AccountBalance.token_id == self.token_id,
                AccountBalance.account == account,
            )
        ).scalar_one_or_none()
        return amount or 0

    def balances(self, include_zero: bool = False) -> dict[str, int]:
        rows = self.session.execute(
            select(AccountBalance.account, AccountBalance.amount)
            .where(AccountBalance.token_id == self.token_id)
            .order_by(AccountBalance.account)
        ).all()
        return {
            account: amount
            for account, amount in rows
            if include_zero or amount
        }

    def balance_sum(self) -> int:
        # amounts are stored as text; sum exactly in Python
        return sum(self.balances().values())

    def allowance(self, owner: str, spender: str) -> int:
        amount = self.session.execute(
            select(Allowance.amount).where(
                Allowance.token_id == self.token_id,
                Allowance.owner == owner,
                Allowance.spender == spender,
            )
        ).scalar_one_or_none()
        return amount or 0

    def events(self, since_seq: int = 0, limit: int | None = None) -> list[LedgerEventInfo]:
        """Events with seq > since_seq, oldest first."""
        query = (
            select(LedgerEvent)
            .where(
                LedgerEvent.token_id == self.token_id,
                LedgerEvent.seq > since_seq,
            )
            .order_by(LedgerEvent.seq)
        )
        if limit is not None:
            query = query.limit(limit)
        return [LedgerEventInfo.from_model(e) for e in self.session.execute(query).scalars()]

    def registered_notifier(self) -> str | None:
        """Notifier label recorded by the latest NOTIFIER_CHANGED event."""
        payload = self.session.execute(
            select(LedgerEvent.payload)
            .where(
                LedgerEvent.token_id == self.token_id,
                LedgerEvent.event_type == LedgerEventType.NOTIFIER_CHANGED.value,
            )
            .order_by(LedgerEvent.seq.desc())
            .limit(1)
        ).scalar_one_or_none()
        return payload.get("notifier") if payload else None

    def migration_records(self) -> list[MigrationReceipt]:
        rows = self.session.execute(
            select(MigrationRecord)
            .where(MigrationRecord.token_id == self.token_id)
            .order_by(MigrationRecord.seq)
        ).scalars()
        receipts = []
        running = 0
        for row in rows:
            running += row.amount
            receipts.append(MigrationReceipt.from_model(row, running))
        return receipts

    def verify_supply_conservation(self) -> int:
        """
        Check sum(balances) == total_supply.

        Returns:
            The verified total supply.

        Raises:
            SupplyInvariantError: on mismatch.
        """
        total_supply = self._state().total_supply
        balance_sum = self.balance_sum()
        if balance_sum != total_supply:
            logger.error(
                "supply_invariant_violated",
                extra={"total_supply": str(total_supply), "balance_sum": str(balance_sum)},
            )
            raise SupplyInvariantError(str(self.token_id), total_supply, balance_sum)
        return total_supply
