"""
TokenLedger -- the public entry point for one token.

Responsibility:
    Composes the kernel services into the operations external callers
    use (mint, transfer, transfer_from, release, migrate, ...), and owns
    the three guarantees every call needs:

    1. Serialization -- one call at a time per token, or per engine when
       the engine hands every session the same connection (in-memory
       SQLite).  Calls from other threads wait on a single-writer gate.
    2. Atomicity -- each call runs in one session_scope(); services only
       flush, and any exception (including a rejecting notifier or
       migration target) rolls back every row the call touched, ledger
       events included.
    3. Re-entrancy blocking -- while a call is in progress, a call back
       into the same token (or, on a single-connection engine, into any
       token) from the same thread, for example from a notifier or a
       migration target, raises ReentrantCallError instead of observing
       uncommitted state.

Architecture position:
    Kernel facade.  Hosts (CLI, services, tests) construct it with a
    SQLAlchemy session factory and pass the already-verified caller
    identity to every operation.

Invariants enforced:
    CALL_ATOMICITY, plus every invariant of the services it composes.

Failure modes:
    - Any TokenKernelError subclass; rejected calls are logged at WARNING
      as ``operation_rejected`` with the error code.
    - ValueError / TypeError for malformed identities or capabilities.

Usage:
    ledger = TokenLedger.create(
        get_session_factory(),
        administrator="0xadmin",
        name="Foo",
        symbol="FOO",
        initial_supply=1000,
        decimals=18,
        mintable=True,
    )
    ledger.release("0xadmin")
    ledger.transfer("0xadmin", "0xbob", 10)
"""

import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from token_kernel.db.engine import session_scope
from token_kernel.domain.amounts import require_account, require_amount
from token_kernel.domain.clock import Clock, SystemClock
from token_kernel.domain.dtos import (
    LedgerEventInfo,
    MigrationReceipt,
    MintReceipt,
    TokenInfo,
    TransferReceipt,
)
from token_kernel.domain.interfaces import (
    MigrationTarget,
    TransferCallback,
    TransferNotifier,
)
from token_kernel.domain.lifecycle import MigrationState
from token_kernel.exceptions import (
    EmptySupplyNotMintableError,
    ReentrantCallError,
    TokenKernelError,
    TokenNotFoundError,
)
from token_kernel.logging_config import LogContext, get_logger
from token_kernel.models.agent import AgentRole
from token_kernel.models.ledger_event import LedgerEventType
from token_kernel.models.token_state import TokenState
from token_kernel.selectors.token_selector import TokenSelector
from token_kernel.services.access_control import AccessControl
from token_kernel.services.allowance_service import AllowanceService
from token_kernel.services.balance_ledger import BalanceLedger
from token_kernel.services.event_recorder import EventRecorder
from token_kernel.services.metadata_registry import MetadataRegistry
from token_kernel.services.migration_authority import (
    MigrationAuthority,
    target_identity,
)
from token_kernel.services.supply_control import SupplyControl
from token_kernel.services.transfer_gate import TransferGate
from token_kernel.services.transfer_notifier import (
    TransferNotifierSlot,
    as_callback,
    describe_notifier,
)

logger = get_logger("ledger")


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


class _CallGate:
    """Single-writer gate for one token or one single-connection engine."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holder: int | None = None

    @contextmanager
    def enter(self, operation: str) -> Iterator[None]:
        me = threading.get_ident()
        if self._holder == me:
            raise ReentrantCallError(operation)
        with self._lock:
            self._holder = me
            try:
                yield
            finally:
                self._holder = None


_gates: dict[UUID, _CallGate] = {}
_engine_gates: "weakref.WeakKeyDictionary[Engine, _CallGate]" = weakref.WeakKeyDictionary()
_notifiers: dict[UUID, TransferNotifierSlot] = {}
_registry_lock = threading.Lock()


def _single_connection_engine(session_factory: sessionmaker[Session]) -> Engine | None:
    """The bound engine when every session shares one DBAPI connection."""
    bind = session_factory.kw.get("bind")
    if isinstance(bind, Engine) and isinstance(bind.pool, StaticPool):
        return bind
    return None


def _gate_for(session_factory: sessionmaker[Session], token_id: UUID) -> _CallGate:
    """
    Gate shared by every TokenLedger instance of the same token.

    On a single-connection engine one transaction spans all tokens, so
    the gate is per engine instead.
    """
    engine = _single_connection_engine(session_factory)
    with _registry_lock:
        if engine is not None:
            gate = _engine_gates.get(engine)
            if gate is None:
                gate = _engine_gates[engine] = _CallGate()
            return gate
        gate = _gates.get(token_id)
        if gate is None:
            gate = _gates[token_id] = _CallGate()
        return gate


def _notifier_slot_for(token_id: UUID) -> TransferNotifierSlot:
    with _registry_lock:
        slot = _notifiers.get(token_id)
        if slot is None:
            slot = _notifiers[token_id] = TransferNotifierSlot()
        return slot


@dataclass
class _Unit:
    """Services bound to the session and state row of one call."""

    session: Session
    state: TokenState
    recorder: EventRecorder
    ledger: BalanceLedger
    access: AccessControl
    supply: SupplyControl
    gate: TransferGate
    allowances: AllowanceService
    migration: MigrationAuthority
    metadata: MetadataRegistry
    selector: TokenSelector


def _bind(session: Session, state: TokenState, clock: Clock) -> _Unit:
    recorder = EventRecorder(session, state, clock)
    ledger = BalanceLedger(session, state)
    access = AccessControl(session, state, recorder)
    supply = SupplyControl(session, state, recorder)
    return _Unit(
        session=session,
        state=state,
        recorder=recorder,
        ledger=ledger,
        access=access,
        supply=supply,
        gate=TransferGate(session, state, recorder, supply, access),
        allowances=AllowanceService(session, state, recorder),
        migration=MigrationAuthority(session, state, recorder, ledger),
        metadata=MetadataRegistry(session, state, recorder),
        selector=TokenSelector(session, state.id),
    )


def _require_decimals(decimals: object) -> int:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise ValueError(f"decimals must be a non-negative integer, got {decimals!r}")
    return decimals


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class TokenLedger:
    """
    One token's ledger with lifecycle gating.

    Contract:
        Every public method runs as one serialized, all-or-nothing call.
        Mutating methods take the verified ``caller`` first.

    Guarantees:
        - No partial effects: a raised error means no balance, flag,
          allowance, agent or event changed.
        - The transfer notifier is a process-local capability shared by
          every instance of the token; the migration target belongs to
          this instance.  Both are swapped after the recording call has
          committed, before the gate admits the next call.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        token_id: UUID,
        *,
        clock: Clock | None = None,
        migration_target: MigrationTarget | None = None,
    ):
        self._factory = session_factory
        self._token_id = token_id
        self._clock = clock or SystemClock()
        self._gate = _gate_for(session_factory, token_id)
        self._notifier = _notifier_slot_for(token_id)
        self._migration_target = migration_target

    # -- construction -------------------------------------------------------

    @classmethod
    def create(
        cls,
        session_factory: sessionmaker[Session],
        *,
        administrator: str,
        name: str,
        symbol: str,
        initial_supply: int,
        decimals: int,
        mintable: bool = True,
        release_agent: str | None = None,
        clock: Clock | None = None,
    ) -> "TokenLedger":
        """
        Create a token and credit the initial supply to the administrator.

        The initial allocation is a direct mint, not a transfer, so it is
        not subject to the Transfer Gate.

        Raises:
            EmptySupplyNotMintableError: mintable is False and the initial
                supply is zero.
            InvalidAmountError / ArithmeticOverflowError: bad initial supply.
            ValueError: bad identities or decimals.
        """
        require_account(administrator)
        if release_agent is not None:
            require_account(release_agent)
        supply = require_amount(initial_supply)
        decimals = _require_decimals(decimals)
        if not mintable and supply == 0:
            logger.warning(
                "token_creation_rejected",
                extra={"symbol": symbol, "error_code": EmptySupplyNotMintableError.code},
            )
            raise EmptySupplyNotMintableError(symbol)

        clock = clock or SystemClock()
        token_id = uuid4()
        agent = release_agent or administrator
        gate = _gate_for(session_factory, token_id)

        with gate.enter("create"), LogContext.bind(
            token_id=str(token_id), caller=administrator, operation="create"
        ):
            with session_scope(session_factory) as session:
                state = TokenState(
                    id=token_id,
                    name=name,
                    symbol=symbol,
                    decimals=decimals,
                    total_supply=0,
                    minting_finished=False,
                    released=False,
                    migration_target_id=None,
                    total_migrated=0,
                    owner=administrator,
                    release_agent=agent,
                    last_event_seq=0,
                    created_by=administrator,
                )
                session.add(state)
                session.flush()

                unit = _bind(session, state, clock)
                unit.recorder.record(
                    LedgerEventType.TOKEN_CREATED,
                    administrator,
                    name=name,
                    symbol=symbol,
                    decimals=decimals,
                    initial_supply=supply,
                    mintable=mintable,
                    owner=administrator,
                    release_agent=agent,
                )
                if supply:
                    unit.ledger.mint(administrator, supply)
                    unit.recorder.record(
                        LedgerEventType.MINTED,
                        administrator,
                        recipient=administrator,
                        amount=supply,
                    )
                if not mintable:
                    unit.supply.finish_minting(administrator)

            logger.info(
                "token_created",
                extra={
                    "symbol": symbol,
                    "initial_supply": str(supply),
                    "mintable": mintable,
                },
            )

        return cls(session_factory, token_id, clock=clock)

    @classmethod
    def open(
        cls,
        session_factory: sessionmaker[Session],
        token_id: UUID | str,
        *,
        clock: Clock | None = None,
        migration_target: MigrationTarget | None = None,
        notifier: TransferNotifier | TransferCallback | None = None,
    ) -> "TokenLedger":
        """
        Attach to an existing token.

        ``migration_target``, when given, must carry the target_id already
        recorded for the token.  ``notifier``, when given, must carry the
        label of the notifier recorded for the token and is installed for
        every instance of the token in this process.  A token whose
        recorded notifier is not installed in this process cannot be
        opened without it, so no transfer bypasses the notifier.

        Raises:
            TokenNotFoundError: unknown token id.
            ValueError: migration_target or notifier does not match the
                recorded one, or the recorded notifier is unavailable.
        """
        token_uuid = token_id if isinstance(token_id, UUID) else UUID(str(token_id))
        if notifier is not None:
            as_callback(notifier)
        slot = _notifier_slot_for(token_uuid)

        with _gate_for(session_factory, token_uuid).enter("open"):
            with session_scope(session_factory) as session:
                state = session.get(TokenState, token_uuid)
                if state is None:
                    raise TokenNotFoundError(str(token_uuid))
                recorded_target = state.migration_target_id
                recorded_notifier = TokenSelector(session, token_uuid).registered_notifier()

            if (
                migration_target is not None
                and target_identity(migration_target) != recorded_target
            ):
                raise ValueError(
                    f"Migration target {target_identity(migration_target)} does not match "
                    f"designated target {recorded_target}"
                )
            if notifier is not None:
                if describe_notifier(notifier) != recorded_notifier:
                    raise ValueError(
                        f"Notifier {describe_notifier(notifier)} does not match "
                        f"registered notifier {recorded_notifier}"
                    )
                slot.set(notifier)
            elif slot.label != recorded_notifier:
                logger.warning(
                    "notifier_unavailable",
                    extra={"token_id": str(token_uuid), "notifier": recorded_notifier},
                )
                raise ValueError(
                    f"Token {token_uuid} has notifier {recorded_notifier} registered; "
                    f"pass it to open()"
                )

        return cls(session_factory, token_uuid, clock=clock, migration_target=migration_target)

    @property
    def token_id(self) -> UUID:
        return self._token_id

    @property
    def has_notifier(self) -> bool:
        return self._notifier.registered

    # -- call plumbing ------------------------------------------------------

    def _load_state(self, session: Session) -> TokenState:
        state = session.execute(
            select(TokenState)
            .where(TokenState.id == self._token_id)
            .with_for_update()
        ).scalar_one_or_none()
        if state is None:
            raise TokenNotFoundError(str(self._token_id))
        return state

    @contextmanager
    def _call(self, operation: str, caller: str | None = None) -> Iterator[_Unit]:
        with self._gate.enter(operation):
            with self._transaction(operation, caller) as unit:
                yield unit

    @contextmanager
    def _transaction(self, operation: str, caller: str | None) -> Iterator[_Unit]:
        """One session_scope; the caller must hold the gate."""
        with LogContext.bind(
            token_id=str(self._token_id), caller=caller, operation=operation
        ):
            try:
                with session_scope(self._factory) as session:
                    yield _bind(session, self._load_state(session), self._clock)
            except TokenKernelError as exc:
                logger.warning(
                    "operation_rejected",
                    extra={"error_code": exc.code, "error": str(exc)},
                )
                raise

    # -- reads --------------------------------------------------------------

    def info(self) -> TokenInfo:
        with self._call("info") as unit:
            return unit.selector.token_info()

    def name(self) -> str:
        return self.info().name

    def symbol(self) -> str:
        return self.info().symbol

    def decimals(self) -> int:
        return self.info().decimals

    def total_supply(self) -> int:
        return self.info().total_supply

    def is_minting_open(self) -> bool:
        return not self.info().minting_finished

    def is_released(self) -> bool:
        return self.info().released

    def upgrade_enabled(self) -> bool:
        return self.info().upgrade_enabled

    def migration_state(self) -> MigrationState:
        return self.info().migration_state

    def total_migrated(self) -> int:
        return self.info().total_migrated

    def balance_of(self, account: str) -> int:
        with self._call("balance_of") as unit:
            return unit.selector.balance_of(account)

    def balances(self) -> dict[str, int]:
        with self._call("balances") as unit:
            return unit.selector.balances()

    def allowance(self, owner: str, spender: str) -> int:
        with self._call("allowance") as unit:
            return unit.selector.allowance(owner, spender)

    def is_agent(self, account: str, role: AgentRole) -> bool:
        with self._call("is_agent") as unit:
            return unit.access.is_agent(account, role)

    def events(self, since_seq: int = 0, limit: int | None = None) -> list[LedgerEventInfo]:
        with self._call("events") as unit:
            return unit.selector.events(since_seq=since_seq, limit=limit)

    def migration_records(self) -> list[MigrationReceipt]:
        with self._call("migration_records") as unit:
            return unit.selector.migration_records()

    def verify_supply_conservation(self) -> int:
        with self._call("verify_supply_conservation") as unit:
            return unit.selector.verify_supply_conservation()

    # -- supply -------------------------------------------------------------

    def mint(self, caller: str, to: str, amount: int) -> MintReceipt:
        """Create new supply.  Administrator or mint agent, minting open."""
        with self._call("mint", caller) as unit:
            require_account(to)
            value = require_amount(amount)
            unit.access.require_minter(caller, "mint")
            total = unit.ledger.mint(to, value)
            event = unit.recorder.record(
                LedgerEventType.MINTED, caller, recipient=to, amount=value
            )
        return MintReceipt(recipient=to, amount=value, total_supply=total, event_seq=event.seq)

    def finish_minting(self, caller: str) -> bool:
        with self._call("finish_minting", caller) as unit:
            unit.access.require_owner(caller, "finish minting")
            return unit.supply.finish_minting(caller)

    def set_mint_agent(self, caller: str, account: str, enabled: bool = True) -> None:
        with self._call("set_mint_agent", caller) as unit:
            unit.access.require_owner(caller, "set mint agent")
            unit.access.set_agent(caller, account, AgentRole.MINT, enabled)

    # -- transfer gate ------------------------------------------------------

    def release(self, caller: str) -> bool:
        """Open transfers (and close minting).  Release agent only."""
        with self._call("release", caller) as unit:
            unit.access.require_release_agent(caller, "release transfers")
            return unit.gate.release(caller)

    def set_release_agent(self, caller: str, agent: str) -> None:
        with self._call("set_release_agent", caller) as unit:
            unit.access.require_owner(caller, "set release agent")
            unit.gate.set_release_agent(caller, agent)

    def set_transfer_agent(self, caller: str, account: str, enabled: bool = True) -> None:
        with self._call("set_transfer_agent", caller) as unit:
            unit.access.require_owner(caller, "set transfer agent")
            unit.access.set_agent(caller, account, AgentRole.TRANSFER, enabled)

    def transfer(self, caller: str, to: str, amount: int) -> TransferReceipt:
        with self._call("transfer", caller) as unit:
            return self._move(unit, caller, caller, to, amount)

    def transfer_from(
        self, caller: str, sender: str, to: str, amount: int
    ) -> TransferReceipt:
        """
        Move ``sender``'s funds on their behalf.

        A caller other than ``sender`` consumes its allowance; a sender
        moving its own funds needs none.
        """
        with self._call("transfer_from", caller) as unit:
            return self._move(unit, caller, sender, to, amount)

    def approve(self, caller: str, spender: str, amount: int) -> None:
        with self._call("approve", caller) as unit:
            value = require_amount(amount)
            unit.allowances.approve(caller, spender, value)

    def _move(
        self,
        unit: _Unit,
        spender: str,
        sender: str,
        recipient: str,
        amount: object,
    ) -> TransferReceipt:
        require_account(spender)
        require_account(sender)
        require_account(recipient)
        value = require_amount(amount)

        unit.gate.check_transfer_allowed(sender)
        if spender != sender:
            unit.allowances.spend(sender, spender, value)
        unit.ledger.move(sender, recipient, value)
        event = unit.recorder.record(
            LedgerEventType.TRANSFER,
            spender,
            sender=sender,
            recipient=recipient,
            amount=value,
        )

        # Writes are flushed; the notifier is the last step of the call.
        self._notifier.notify(sender, recipient, value)

        logger.info(
            "transfer_completed",
            extra={"sender": sender, "recipient": recipient, "amount": str(value)},
        )
        return TransferReceipt(
            sender=sender, recipient=recipient, amount=value, event_seq=event.seq
        )

    # -- notifier -----------------------------------------------------------

    def set_notifier(
        self,
        caller: str,
        notifier: TransferNotifier | TransferCallback | None,
    ) -> None:
        """
        Register, replace or (with None) remove the transfer notifier.

        The change applies to every instance of this token in the process.
        """
        as_callback(notifier)
        label = describe_notifier(notifier)
        with self._gate.enter("set_notifier"):
            with self._transaction("set_notifier", caller) as unit:
                unit.access.require_owner(caller, "set notifier")
                unit.recorder.record(
                    LedgerEventType.NOTIFIER_CHANGED,
                    caller,
                    notifier=label,
                    previous_notifier=unit.selector.registered_notifier(),
                )
            self._notifier.set(notifier)
        logger.info("notifier_changed", extra={"notifier": label})

    # -- migration ----------------------------------------------------------

    def designate_migration_target(self, caller: str, target: MigrationTarget) -> None:
        """
        Designate the successor system.  Allowed until the first migration;
        the authority is armed once the token is also released.
        """
        with self._gate.enter("designate_migration_target"):
            with self._transaction("designate_migration_target", caller) as unit:
                unit.access.require_owner(caller, "designate migration target")
                unit.migration.designate(caller, target)
            self._migration_target = target

    def migrate(self, caller: str, amount: int) -> MigrationReceipt:
        with self._call("migrate", caller) as unit:
            require_account(caller)
            return unit.migration.migrate(caller, amount, self._migration_target)

    def migrate_all(self, caller: str) -> MigrationReceipt:
        with self._call("migrate_all", caller) as unit:
            require_account(caller)
            return unit.migration.migrate_all(caller, self._migration_target)

    # -- administration -----------------------------------------------------

    def set_metadata(self, caller: str, name: str, symbol: str) -> None:
        with self._call("set_metadata", caller) as unit:
            unit.access.require_owner(caller, "set metadata")
            unit.metadata.set_metadata(caller, name, symbol)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._call("transfer_ownership", caller) as unit:
            unit.access.require_owner(caller, "transfer ownership")
            unit.access.transfer_ownership(caller, new_owner)
