"""
AccessControl -- who may call privileged operations.

Responsibility:
    Answers capability questions against the token aggregate: is the
    caller the administrator (owner), the release agent, or an enabled
    mint/transfer agent.  Also performs the privileged changes to those
    identities: transfer of ownership and agent registration.

Architecture position:
    Kernel > Services -- imperative shell.  TokenLedger consults it before
    dispatching any privileged call.

Invariants enforced:
    - Caller identities are verified by the host; this service only
      compares them with the identities recorded on the token.
    - Ownership changes only through transfer_ownership().

Failure modes:
    - NotAuthorizedError naming the missing capability.
    - SupplyClosedError when registering a mint agent after minting closed.
    - AlreadyReleasedError when registering a transfer agent after release.
"""

from sqlalchemy import select

from token_kernel.domain.amounts import require_account
from token_kernel.domain.lifecycle import LifecycleAction, validate_transition
from token_kernel.exceptions import NotAuthorizedError
from token_kernel.logging_config import get_logger
from token_kernel.models.agent import AgentRole, TokenAgent
from token_kernel.models.ledger_event import LedgerEventType
from token_kernel.models.token_state import TokenState
from token_kernel.services.base import BaseService
from token_kernel.services.event_recorder import EventRecorder

logger = get_logger("services.access_control")


class AccessControl(BaseService[TokenAgent]):
    """Capability checks and privileged identity changes for one token."""

    def __init__(self, session, state: TokenState, recorder: EventRecorder):
        super().__init__(session, state)
        self._recorder = recorder

    # -- checks -------------------------------------------------------------

    def require_owner(self, caller: str, operation: str) -> None:
        if caller != self.state.owner:
            raise NotAuthorizedError(caller, "administrator", operation)

    def require_release_agent(self, caller: str, operation: str) -> None:
        if caller != self.state.release_agent:
            raise NotAuthorizedError(caller, "release agent", operation)

    def require_minter(self, caller: str, operation: str) -> None:
        if caller == self.state.owner or self.is_agent(caller, AgentRole.MINT):
            return
        raise NotAuthorizedError(caller, "administrator or mint agent", operation)

    def is_agent(self, account: str, role: AgentRole) -> bool:
        agent = self._agent(account, role)
        return agent is not None and agent.enabled

    def agents(self, role: AgentRole) -> list[str]:
        rows = self.session.execute(
            select(TokenAgent)
            .where(
                TokenAgent.token_id == self.state.id,
                TokenAgent.role == role.value,
                TokenAgent.enabled.is_(True),
            )
            .order_by(TokenAgent.account)
        ).scalars()
        return [row.account for row in rows]

    # -- changes ------------------------------------------------------------

    def set_agent(
        self, caller: str, account: str, role: AgentRole, enabled: bool
    ) -> None:
        """
        Enable or disable a delegated capability.

        Preconditions:
            - mint agents: minting still open.
            - transfer agents: token not yet released.
        """
        require_account(account)
        action = (
            LifecycleAction.SET_MINT_AGENT
            if role == AgentRole.MINT
            else LifecycleAction.SET_TRANSFER_AGENT
        )
        validate_transition(self.state.lifecycle(), action, token_id=self.token_id)

        agent = self._agent(account, role)
        if agent is None:
            agent = TokenAgent(
                token_id=self.state.id,
                account=account,
                role=role.value,
                enabled=enabled,
                created_by=caller,
            )
            self.session.add(agent)
        else:
            agent.enabled = enabled
        self.session.flush()

        event_type = (
            LedgerEventType.MINT_AGENT_CHANGED
            if role == AgentRole.MINT
            else LedgerEventType.TRANSFER_AGENT_CHANGED
        )
        self._recorder.record(event_type, caller, account=account, enabled=enabled)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        require_account(new_owner)
        previous = self.state.owner
        self.state.owner = new_owner
        self.session.flush()
        self._recorder.record(
            LedgerEventType.OWNERSHIP_TRANSFERRED,
            caller,
            previous_owner=previous,
            new_owner=new_owner,
        )
        logger.info(
            "ownership_transferred",
            extra={"previous_owner": previous, "new_owner": new_owner},
        )

    def _agent(self, account: str, role: AgentRole) -> TokenAgent | None:
        return self.session.execute(
            select(TokenAgent).where(
                TokenAgent.token_id == self.state.id,
                TokenAgent.account == account,
                TokenAgent.role == role.value,
            )
        ).scalar_one_or_none()
