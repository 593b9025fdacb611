"""Shared identities and external-capability doubles for the test suite."""

ADMIN = "0xadmin"
ALICE = "0xalice"
BOB = "0xbob"
CAROL = "0xcarol"


class RecordingTarget:
    """Migration target that remembers every credit."""

    def __init__(self, target_id: str = "token-v2", accept: bool = True):
        self.target_id = target_id
        self.accept = accept
        self.credits: list[tuple[str, int]] = []

    def credit(self, account: str, amount: int) -> bool:
        if self.accept:
            self.credits.append((account, amount))
        return self.accept


class RaisingTarget:
    """Migration target whose credit call fails."""

    target_id = "token-v2"

    def credit(self, account: str, amount: int) -> bool:
        raise ConnectionError("successor unreachable")


class RecordingNotifier:
    """Transfer notifier that remembers every notification."""

    notifier_id = "recording-notifier"

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.calls: list[tuple[str, str, int]] = []

    def on_transfer(self, sender: str, recipient: str, amount: int) -> bool:
        self.calls.append((sender, recipient, amount))
        return self.accept


def event_types(ledger) -> list[str]:
    return [e.event_type for e in ledger.events()]
