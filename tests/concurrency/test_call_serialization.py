"""
Serialization of ledger calls across threads and across TokenLedger
instances of the same token.
"""

import threading

import pytest

from token_kernel.exceptions import NotifierRejectedError, ReentrantCallError
from token_kernel.ledger import TokenLedger

from tests.support import ADMIN, ALICE, BOB, CAROL


class TestSerialization:
    def test_parallel_transfers_conserve_supply(self, released_ledger):
        errors: list[Exception] = []

        def worker(recipient: str):
            try:
                for _ in range(25):
                    released_ledger.transfer(ADMIN, recipient, 1)
            except Exception as exc:  # asserted below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(r,)) for r in (BOB, CAROL, ALICE)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert released_ledger.balance_of(ADMIN) == 1000 - 75
        assert released_ledger.balance_of(BOB) == 25
        assert released_ledger.balance_of(CAROL) == 25
        assert released_ledger.balance_of(ALICE) == 125
        assert released_ledger.verify_supply_conservation() == 1100

    def test_event_sequence_gapless_under_contention(self, released_ledger):
        def worker():
            for _ in range(10):
                released_ledger.transfer(ADMIN, BOB, 1)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        seqs = [e.seq for e in released_ledger.events()]
        assert seqs == list(range(1, len(seqs) + 1))

    def test_second_instance_waits_for_call_in_progress(self, released_ledger, session_factory):
        entered = threading.Event()
        proceed = threading.Event()

        def slow_notifier(sender, recipient, amount):
            entered.set()
            proceed.wait(timeout=10)
            return True

        released_ledger.set_notifier(ADMIN, slow_notifier)
        other = TokenLedger.open(session_factory, released_ledger.token_id)

        first = threading.Thread(target=released_ledger.transfer, args=(ALICE, BOB, 10))
        first.start()
        assert entered.wait(timeout=10)

        second = threading.Thread(target=other.transfer, args=(ALICE, CAROL, 90))
        second.start()
        second.join(timeout=0.2)
        assert second.is_alive()

        proceed.set()
        first.join(timeout=10)
        second.join(timeout=10)

        assert other.balance_of(ALICE) == 0
        assert other.balance_of(BOB) == 10
        assert other.balance_of(CAROL) == 90


class TestReentrancyAcrossInstances:
    def test_other_instance_of_same_token_refused(self, released_ledger, session_factory):
        other = TokenLedger.open(session_factory, released_ledger.token_id)

        def reenter(sender, recipient, amount):
            other.transfer(recipient, sender, amount)
            return True

        released_ledger.set_notifier(ADMIN, reenter)

        with pytest.raises(NotifierRejectedError) as exc_info:
            released_ledger.transfer(ALICE, BOB, 5)
        assert isinstance(exc_info.value.__cause__, ReentrantCallError)
        assert exc_info.value.__cause__.operation == "transfer"


class TestSharedConnectionEngine:
    """In-memory SQLite hands every session one connection, so tokens share a gate."""

    def _released_pair(self, make_ledger):
        first, second = make_ledger(symbol="AAA"), make_ledger(symbol="BBB")
        first.release(ADMIN)
        second.release(ADMIN)
        return first, second

    def test_rejected_call_leaves_no_trace_beside_other_token(self, make_ledger):
        a, b = self._released_pair(make_ledger)
        entered = threading.Event()
        proceed = threading.Event()
        rejected: list[NotifierRejectedError] = []

        def stalling_rejecter(sender, recipient, amount):
            entered.set()
            proceed.wait(timeout=10)
            return False

        a.set_notifier(ADMIN, stalling_rejecter)

        def run_a():
            try:
                a.transfer(ADMIN, ALICE, 10)
            except NotifierRejectedError as exc:
                rejected.append(exc)

        first = threading.Thread(target=run_a)
        first.start()
        assert entered.wait(timeout=10)

        second = threading.Thread(target=b.transfer, args=(ADMIN, BOB, 7))
        second.start()
        second.join(timeout=0.2)
        assert second.is_alive()

        proceed.set()
        first.join(timeout=10)
        second.join(timeout=10)

        assert len(rejected) == 1
        assert a.balance_of(ALICE) == 0
        assert a.balance_of(ADMIN) == 1000
        assert a.verify_supply_conservation() == 1000
        assert b.balance_of(BOB) == 7
        assert b.balance_of(ADMIN) == 993

    def test_call_into_other_token_from_notifier_refused(self, make_ledger):
        a, b = self._released_pair(make_ledger)

        def forward(sender, recipient, amount):
            b.transfer(ADMIN, recipient, amount)
            return True

        a.set_notifier(ADMIN, forward)

        with pytest.raises(NotifierRejectedError) as exc_info:
            a.transfer(ADMIN, ALICE, 3)
        assert isinstance(exc_info.value.__cause__, ReentrantCallError)
        assert a.balance_of(ALICE) == 0
        assert b.balance_of(ALICE) == 0
