"""
MetadataRegistry -- display name and symbol.

Purely informational: changes are privileged but constrained by no
phase, and nothing else in the kernel reads these fields.
"""

from token_kernel.logging_config import get_logger
from token_kernel.models.ledger_event import LedgerEventType
from token_kernel.models.token_state import TokenState
from token_kernel.services.base import BaseService
from token_kernel.services.event_recorder import EventRecorder

logger = get_logger("services.metadata")


class MetadataRegistry(BaseService[TokenState]):
    def __init__(self, session, state: TokenState, recorder: EventRecorder):
        super().__init__(session, state)
        self._recorder = recorder

    def set_metadata(self, caller: str, name: str, symbol: str) -> None:
        if not isinstance(name, str) or not isinstance(symbol, str):
            raise TypeError("name and symbol must be strings")

        previous = (self.state.name, self.state.symbol)
        self.state.name = name
        self.state.symbol = symbol
        self.session.flush()
        self._recorder.record(
            LedgerEventType.METADATA_UPDATED,
            caller,
            name=name,
            symbol=symbol,
            previous_name=previous[0],
            previous_symbol=previous[1],
        )
        logger.info("metadata_updated", extra={"name": name, "symbol": symbol})
