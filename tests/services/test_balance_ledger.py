"""
Service-level tests for BalanceLedger and EventRecorder, driven on a raw
session below the TokenLedger facade.
"""

import pytest

from token_kernel.domain.amounts import UINT256_MAX
from token_kernel.exceptions import (
    ArithmeticOverflowError,
    InsufficientFundsError,
    SupplyClosedError,
)
from token_kernel.models.ledger_event import LedgerEventType
from token_kernel.models.token_state import TokenState
from token_kernel.services.balance_ledger import BalanceLedger
from token_kernel.services.event_recorder import EventRecorder

from tests.support import ADMIN, ALICE, BOB


@pytest.fixture
def state(ledger, session) -> TokenState:
    return session.get(TokenState, ledger.token_id)


@pytest.fixture
def balances(session, state) -> BalanceLedger:
    return BalanceLedger(session, state)


class TestBalanceLedger:
    def test_move(self, balances):
        balances.move(ADMIN, ALICE, 300)
        assert balances.balance_of(ADMIN) == 700
        assert balances.balance_of(ALICE) == 300

    def test_debit_more_than_balance(self, balances):
        with pytest.raises(InsufficientFundsError):
            balances.debit(ALICE, 1)

    def test_zero_debit_of_unknown_account(self, balances):
        assert balances.debit("0xnobody", 0) == 0

    def test_mint_and_burn_track_supply(self, balances, state):
        assert balances.mint(BOB, 10) == 1010
        assert balances.burn(BOB, 4) == 1006
        assert state.total_supply == 1006
        assert balances.balance_of(BOB) == 6

    def test_mint_overflow(self, balances, state):
        with pytest.raises(ArithmeticOverflowError):
            balances.mint(BOB, UINT256_MAX)
        assert state.total_supply == 1000

    def test_mint_after_finish(self, balances, state):
        state.minting_finished = True
        with pytest.raises(SupplyClosedError):
            balances.mint(BOB, 1)

    def test_service_never_commits(self, balances, session, ledger):
        balances.move(ADMIN, ALICE, 300)
        session.rollback()
        assert ledger.balance_of(ALICE) == 0


class TestEventRecorder:
    def test_sequence_advances_counter(self, session, state, deterministic_clock):
        recorder = EventRecorder(session, state, deterministic_clock)
        start = state.last_event_seq

        first = recorder.record(LedgerEventType.APPROVAL, ADMIN, amount=1)
        second = recorder.record(LedgerEventType.APPROVAL, ADMIN, amount=2)

        assert (first.seq, second.seq) == (start + 1, start + 2)
        assert state.last_event_seq == start + 2

    def test_large_amounts_stored_as_text(self, session, state, deterministic_clock):
        recorder = EventRecorder(session, state, deterministic_clock)
        event = recorder.record(
            LedgerEventType.MINTED, ADMIN, amount=UINT256_MAX, flag=True, note=None
        )
        assert event.payload == {"amount": str(UINT256_MAX), "flag": True, "note": None}
