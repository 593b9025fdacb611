"""
AllowanceService -- spending approvals for transfer_from.

Responsibility:
    Records how much a spender may move out of an owner's balance and
    consumes that approval when transfer_from succeeds.

Architecture position:
    Kernel > Services -- imperative shell.

Failure modes:
    - InsufficientAllowanceError: spend() beyond the approved amount.
"""

from sqlalchemy import select

from token_kernel.domain.amounts import require_account
from token_kernel.exceptions import InsufficientAllowanceError
from token_kernel.models.allowance import Allowance
from token_kernel.models.ledger_event import LedgerEventType
from token_kernel.models.token_state import TokenState
from token_kernel.services.base import BaseService
from token_kernel.services.event_recorder import EventRecorder


class AllowanceService(BaseService[Allowance]):
    """Approvals for one token."""

    def __init__(self, session, state: TokenState, recorder: EventRecorder):
        super().__init__(session, state)
        self._recorder = recorder

    def _row(self, owner: str, spender: str) -> Allowance | None:
        return self.session.execute(
            select(Allowance).where(
                Allowance.token_id == self.state.id,
                Allowance.owner == owner,
                Allowance.spender == spender,
            )
        ).scalar_one_or_none()

    def allowance(self, owner: str, spender: str) -> int:
        row = self._row(owner, spender)
        return row.amount if row is not None else 0

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set (not add to) the allowance of ``spender`` over ``owner``."""
        require_account(spender)
        row = self._row(owner, spender)
        if row is None:
            row = Allowance(token_id=self.state.id, owner=owner, spender=spender)
            self.session.add(row)
        row.amount = amount
        self.session.flush()
        self._recorder.record(
            LedgerEventType.APPROVAL,
            owner,
            owner=owner,
            spender=spender,
            amount=amount,
        )

    def check(self, owner: str, spender: str, amount: int) -> None:
        available = self.allowance(owner, spender)
        if available < amount:
            raise InsufficientAllowanceError(owner, spender, available, amount)

    def spend(self, owner: str, spender: str, amount: int) -> int:
        """Consume ``amount`` of the approval.  Returns what remains."""
        self.check(owner, spender, amount)
        row = self._row(owner, spender)
        if row is None:
            return 0
        row.amount = row.amount - amount
        self.session.flush()
        return row.amount
