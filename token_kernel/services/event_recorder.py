"""
EventRecorder -- append entries to the public ledger event log.

Responsibility:
    Allocates the next per-token sequence number from the locked
    TokenState row and writes one LedgerEvent per committed state change,
    mirroring each event into the structured log.

Architecture position:
    Kernel > Services -- imperative shell.  Used by every mutating service.

Invariants enforced:
    - seq is strictly monotonic per token.  The counter lives on the
      aggregate row that the current call holds; the aggregate-max-plus-one
      query pattern is not used.
    - Events share the caller's transaction, so a failed call emits none.
"""

from typing import Any

from token_kernel.domain.clock import Clock
from token_kernel.logging_config import get_logger
from token_kernel.models.ledger_event import LedgerEvent, LedgerEventType
from token_kernel.models.token_state import TokenState
from token_kernel.services.base import BaseService

logger = get_logger("services.events")


def _json_safe(value: Any) -> Any:
    # ints beyond 2**53 lose precision in most JSON consumers
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    return value


class EventRecorder(BaseService[LedgerEvent]):
    """Writes LedgerEvent rows for the token held by the current call."""

    def __init__(self, session, state: TokenState, clock: Clock):
        super().__init__(session, state)
        self._clock = clock

    def record(
        self,
        event_type: LedgerEventType,
        caller: str,
        **payload: Any,
    ) -> LedgerEvent:
        """
        Append one event.

        Postconditions:
            - ``state.last_event_seq`` is incremented by one and equals the
              returned event's ``seq``.

        Returns:
            The flushed LedgerEvent.
        """
        seq = (self.state.last_event_seq or 0) + 1
        self.state.last_event_seq = seq

        event = LedgerEvent(
            token_id=self.state.id,
            seq=seq,
            event_type=event_type,
            caller=caller,
            payload={k: _json_safe(v) for k, v in payload.items()},
            occurred_at=self._clock.now(),
        )
        self.session.add(event)
        self.session.flush()

        logger.info(
            "ledger_event_recorded",
            extra={
                "seq": seq,
                "event_type": event_type.value,
                **{f"event_{k}": _json_safe(v) for k, v in payload.items()},
            },
        )
        return event
