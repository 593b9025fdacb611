"""
TransferGate -- the "released" phase machine.

Responsibility:
    Decides whether account-to-account movement is allowed and performs
    the one-way release.  Releasing always forces SupplyControl closed,
    on every invocation, even for tokens constructed as mintable.

Architecture position:
    Kernel > Services -- imperative shell.  TokenLedger calls
    check_transfer_allowed() before every transfer and transfer_from, and
    release() on behalf of the release agent.

Invariants enforced:
    RELEASE_MONOTONIC -- released only moves false -> true, and is never
        true while minting is open.
    - Before release only enabled transfer agents may send.  The initial
      allocation at construction does not pass through this gate.
    - The release agent can only be replaced before release.

Failure modes:
    - TransfersDisabledError: transfer before release by a non-agent.
    - AlreadyReleasedError: set_release_agent() after release.
"""

from token_kernel.domain import lifecycle
from token_kernel.domain.amounts import require_account
from token_kernel.domain.lifecycle import LifecycleAction, validate_transition
from token_kernel.logging_config import get_logger
from token_kernel.models.agent import AgentRole
from token_kernel.models.ledger_event import LedgerEventType
from token_kernel.models.token_state import TokenState
from token_kernel.services.access_control import AccessControl
from token_kernel.services.base import BaseService
from token_kernel.services.event_recorder import EventRecorder
from token_kernel.services.supply_control import SupplyControl

logger = get_logger("services.transfer_gate")


class TransferGate(BaseService[TokenState]):
    """Transfer phase flag for one token."""

    def __init__(
        self,
        session,
        state: TokenState,
        recorder: EventRecorder,
        supply: SupplyControl,
        access: AccessControl,
    ):
        super().__init__(session, state)
        self._recorder = recorder
        self._supply = supply
        self._access = access

    def is_released(self) -> bool:
        return self.state.lifecycle().released

    def check_transfer_allowed(self, sender: str) -> None:
        """
        Raise TransfersDisabledError unless ``sender`` may move funds now.
        """
        current = self.state.lifecycle()
        validate_transition(
            current,
            LifecycleAction.TRANSFER,
            token_id=self.token_id,
            sender=sender,
            sender_is_transfer_agent=(
                not current.released
                and self._access.is_agent(sender, AgentRole.TRANSFER)
            ),
        )

    def release(self, caller: str) -> bool:
        """
        Open the gate for everyone.

        Postconditions:
            - released is True and minting_finished is True.

        Returns:
            True if this call opened the gate, False if it was already open.
        """
        self._supply.finish_minting(caller)

        current = self.state.lifecycle()
        if current.released:
            logger.debug("token_already_released")
            return False

        self.state.apply_lifecycle(lifecycle.release(current))
        self.session.flush()
        self._recorder.record(LedgerEventType.RELEASED, caller)
        logger.info("token_released", extra={"release_agent": caller})
        return True

    def set_release_agent(self, caller: str, agent: str) -> None:
        require_account(agent)
        validate_transition(
            self.state.lifecycle(),
            LifecycleAction.SET_RELEASE_AGENT,
            token_id=self.token_id,
        )
        previous = self.state.release_agent
        self.state.release_agent = agent
        self.session.flush()
        self._recorder.record(
            LedgerEventType.RELEASE_AGENT_CHANGED,
            caller,
            previous_agent=previous,
            new_agent=agent,
        )
        logger.info(
            "release_agent_changed",
            extra={"previous_agent": previous, "new_agent": agent},
        )
