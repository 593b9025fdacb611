"""
BalanceLedger -- per-account balances and the total supply.

Responsibility:
    Owns every write to AccountBalance and TokenState.total_supply:
    movements between accounts, minting into an account, and burning out
    of an account when value migrates away.

Architecture position:
    Kernel > Services -- imperative shell.  Called by TransferGate-checked
    transfer paths in TokenLedger, by SupplyControl-checked minting, and by
    MigrationAuthority.

Invariants enforced:
    SUPPLY_CONSERVATION -- move() leaves total supply unchanged; mint() and
        burn() change a balance and the supply by the same amount.
    CHECKED_ARITHMETIC  -- all sums go through domain.amounts.

Failure modes:
    - InsufficientFundsError: debit larger than the balance.
    - SupplyClosedError: mint() after minting finished.
    - ArithmeticOverflowError: supply or balance above UINT256_MAX.
"""

from sqlalchemy import select

from token_kernel.domain.amounts import checked_add, checked_sub
from token_kernel.domain.lifecycle import LifecycleAction, validate_transition
from token_kernel.exceptions import InsufficientFundsError
from token_kernel.logging_config import get_logger
from token_kernel.models.balance import AccountBalance
from token_kernel.services.base import BaseService

logger = get_logger("services.balance_ledger")


class BalanceLedger(BaseService[AccountBalance]):
    """
    Balance bookkeeping for one token.

    Contract:
        Amounts passed in are already validated ints.  Each public method
        either applies all of its writes or raises before writing.
    """

    def _row(self, account: str) -> AccountBalance | None:
        return self.session.execute(
            select(AccountBalance).where(
                AccountBalance.token_id == self.state.id,
                AccountBalance.account == account,
            )
        ).scalar_one_or_none()

    def _row_for_update(self, account: str) -> AccountBalance:
        row = self._row(account)
        if row is None:
            row = AccountBalance(token_id=self.state.id, account=account, amount=0)
            self.session.add(row)
        return row

    def balance_of(self, account: str) -> int:
        row = self._row(account)
        return row.amount if row is not None else 0

    def credit(self, account: str, amount: int) -> int:
        """Increase a balance without touching supply.  Returns the new balance."""
        row = self._row_for_update(account)
        row.amount = checked_add(row.amount or 0, amount)
        self.session.flush()
        return row.amount

    def debit(self, account: str, amount: int) -> int:
        """Decrease a balance without touching supply.  Returns the new balance."""
        row = self._row(account)
        balance = row.amount if row is not None else 0
        if balance < amount:
            raise InsufficientFundsError(account, balance, amount)
        if row is None:
            # zero debit from an unknown account
            return 0
        row.amount = balance - amount
        self.session.flush()
        return row.amount

    def move(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Postconditions:
            - total supply unchanged; a self-transfer leaves the balance
              unchanged.
        """
        self.debit(sender, amount)
        self.credit(recipient, amount)

    def mint(self, recipient: str, amount: int) -> int:
        """
        Create ``amount`` new units in ``recipient``'s balance.

        Returns:
            The new total supply.
        """
        validate_transition(
            self.state.lifecycle(), LifecycleAction.MINT, token_id=self.token_id
        )
        new_supply = checked_add(self.state.total_supply or 0, amount)
        self.credit(recipient, amount)
        self.state.total_supply = new_supply
        self.session.flush()
        logger.debug(
            "supply_increased",
            extra={"recipient": recipient, "amount": str(amount), "total_supply": str(new_supply)},
        )
        return new_supply

    def burn(self, account: str, amount: int) -> int:
        """
        Remove ``amount`` from ``account`` and from total supply.

        Returns:
            The new total supply.
        """
        self.debit(account, amount)
        new_supply = checked_sub(self.state.total_supply or 0, amount)
        self.state.total_supply = new_supply
        self.session.flush()
        logger.debug(
            "supply_decreased",
            extra={"account": account, "amount": str(amount), "total_supply": str(new_supply)},
        )
        return new_supply
