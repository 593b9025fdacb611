"""
SupplyControl -- the "minting finished" phase machine.

Responsibility:
    Reports whether supply may still grow and performs the one-way close.
    The close is idempotent: closing an already-closed supply is a no-op,
    not an error, and records no second event.

Architecture position:
    Kernel > Services -- imperative shell.  Invoked directly by
    TokenLedger.finish_minting() and, as a forced side effect, by
    TransferGate.release().

Invariants enforced:
    MINTING_MONOTONIC -- minting_finished only moves false -> true
        (TokenState.apply_lifecycle rejects the reverse).
"""

from token_kernel.domain import lifecycle
from token_kernel.logging_config import get_logger
from token_kernel.models.ledger_event import LedgerEventType
from token_kernel.models.token_state import TokenState
from token_kernel.services.base import BaseService
from token_kernel.services.event_recorder import EventRecorder

logger = get_logger("services.supply_control")


class SupplyControl(BaseService[TokenState]):
    """Supply phase flag for one token."""

    def __init__(self, session, state: TokenState, recorder: EventRecorder):
        super().__init__(session, state)
        self._recorder = recorder

    def is_minting_open(self) -> bool:
        return self.state.lifecycle().minting_open

    def finish_minting(self, caller: str) -> bool:
        """
        Permanently close supply growth.

        Returns:
            True if this call performed the transition, False if minting
            was already finished.
        """
        current = self.state.lifecycle()
        if current.minting_finished:
            logger.debug("minting_already_finished")
            return False

        self.state.apply_lifecycle(lifecycle.finish_minting(current))
        self.session.flush()
        self._recorder.record(
            LedgerEventType.MINTING_FINISHED,
            caller,
            total_supply=self.state.total_supply,
        )
        logger.info(
            "minting_finished",
            extra={"total_supply": str(self.state.total_supply)},
        )
        return True
