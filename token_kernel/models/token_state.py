"""
Module: token_kernel.models.token_state
Responsibility: ORM persistence for the token aggregate -- metadata, supply,
    the three phase flags and the two privileged identities.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - minting_finished and released move false -> true only.  The ORM row
      never performs the transition itself; services compute the next
      LifecycleState with domain.lifecycle and write it back via
      apply_lifecycle(), which rejects backwards moves.
    - total_supply == sum(AccountBalance.amount) for this token.
    - total_migrated never decreases.

Audit relevance:
    The phase flags decide which operations are legal.  Every change to
    this row is accompanied by a LedgerEvent in the same transaction.
"""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import TokenAmount, TrackedBase
from token_kernel.db.types import AccountId, Sequence, TokenName, TokenSymbol
from token_kernel.domain.lifecycle import LifecycleState, check_monotonic


class TokenState(TrackedBase):
    """
    One fungible token: metadata, supply and lifecycle flags.

    Contract:
        Rows are created once by TokenLedger.create() and mutated only by
        the kernel services inside a TokenLedger transaction.

    Guarantees:
        - owner and release_agent are always set.
        - migration_target_id is None until designated.
    """

    __tablename__ = "token_states"

    name: Mapped[TokenName] = mapped_column(nullable=False)

    symbol: Mapped[TokenSymbol] = mapped_column(nullable=False)

    decimals: Mapped[int] = mapped_column(Integer, nullable=False)

    total_supply: Mapped[int] = mapped_column(
        TokenAmount(),
        nullable=False,
        default=0,
    )

    # Supply Control
    minting_finished: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Transfer Gate
    released: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Migration Authority
    migration_target_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
    )

    total_migrated: Mapped[int] = mapped_column(
        TokenAmount(),
        nullable=False,
        default=0,
    )

    # Privileged identities
    owner: Mapped[AccountId] = mapped_column(nullable=False)

    release_agent: Mapped[AccountId] = mapped_column(nullable=False)

    # Counter for LedgerEvent.seq; advanced only by EventRecorder
    last_event_seq: Mapped[Sequence] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<TokenState {self.symbol}: supply={self.total_supply}>"

    def lifecycle(self) -> LifecycleState:
        """Snapshot of the three phase machines."""
        return LifecycleState(
            minting_finished=bool(self.minting_finished),
            released=bool(self.released),
            migration_target_id=self.migration_target_id,
            total_migrated=self.total_migrated or 0,
        )

    def apply_lifecycle(self, new_state: LifecycleState) -> None:
        """Write a validated lifecycle snapshot back onto the row.

        Raises:
            LifecycleViolationError: if any monotonic flag would revert.
        """
        check_monotonic(self.lifecycle(), new_state)
        self.minting_finished = new_state.minting_finished
        self.released = new_state.released
        self.migration_target_id = new_state.migration_target_id
        self.total_migrated = new_state.total_migrated
