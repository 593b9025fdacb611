"""
TransferNotifier -- optional observer of completed transfers.

Responsibility:
    Holds zero or one injected callback and invokes it after every
    successful balance movement of transfer/transfer_from.  The callback
    is part of the transfer's atomicity boundary: if it reports failure
    (returns ``False``) or raises, the enclosing transfer fails with
    NotifierRejectedError and TokenLedger rolls the whole call back.

Architecture position:
    Kernel > Services -- process-local capability slot shared by every
    TokenLedger instance of one token.  It holds no database state; the
    NOTIFIER_CHANGED event recording its label is written by TokenLedger
    under the same gate that swaps the slot.

Failure modes:
    - NotifierRejectedError, chained (``__cause__``) to the callback's own
      exception when it raised.
    - TypeError from set() when the notifier is neither callable nor has
      an ``on_transfer`` method.
"""

from token_kernel.domain.interfaces import TransferCallback, TransferNotifier
from token_kernel.exceptions import NotifierRejectedError
from token_kernel.logging_config import get_logger

logger = get_logger("services.transfer_notifier")


def describe_notifier(notifier: TransferNotifier | TransferCallback | None) -> str | None:
    """Stable label for logs and events."""
    if notifier is None:
        return None
    label = getattr(notifier, "notifier_id", None)
    if isinstance(label, str) and label:
        return label
    return getattr(notifier, "__qualname__", None) or type(notifier).__qualname__


def as_callback(
    notifier: TransferNotifier | TransferCallback | None,
) -> TransferCallback | None:
    """Normalize an observer object or a plain function to one callable."""
    if notifier is None:
        return None
    on_transfer = getattr(notifier, "on_transfer", None)
    if callable(on_transfer):
        return on_transfer
    if callable(notifier):
        return notifier
    raise TypeError(
        f"Notifier must define on_transfer(sender, recipient, amount) or be callable, "
        f"got {type(notifier).__name__}"
    )


class TransferNotifierSlot:
    """Zero-or-one registered notifier."""

    def __init__(self) -> None:
        self._callback: TransferCallback | None = None
        self._label: str | None = None

    @property
    def registered(self) -> bool:
        return self._callback is not None

    @property
    def label(self) -> str | None:
        return self._label

    def set(self, notifier: TransferNotifier | TransferCallback | None) -> None:
        self._callback = as_callback(notifier)
        self._label = describe_notifier(notifier)

    def notify(self, sender: str, recipient: str, amount: int) -> None:
        """
        Invoke the callback, if any.

        Raises:
            NotifierRejectedError: the callback returned False or raised.
        """
        if self._callback is None:
            return

        try:
            accepted = self._callback(sender, recipient, amount)
        except Exception as exc:
            logger.warning(
                "notifier_raised",
                extra={"notifier": self._label, "error": type(exc).__name__},
            )
            raise NotifierRejectedError(
                sender, recipient, amount, reason=f"{type(exc).__name__}: {exc}"
            ) from exc

        if accepted is False:
            logger.warning("notifier_rejected", extra={"notifier": self._label})
            raise NotifierRejectedError(sender, recipient, amount)
