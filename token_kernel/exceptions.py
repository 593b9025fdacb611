"""
Typed Exception Hierarchy for the Token Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger are external agents that decide on their own whether
to resubmit a rejected call. They need to know precisely WHY a call failed
without parsing message text:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - handling a rejected transfer:

    try:
        ledger.transfer(caller, recipient, 10)
    except TransfersDisabledError as e:
        log.info(f"{e.token_id} not released yet")
    except InsufficientFundsError as e:
        api_response(code=e.code, balance=e.balance, required=e.required)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TokenKernelError (base)
    |
    +-- AuthorizationError
    |   +-- NotAuthorizedError
    |
    +-- AmountError
    |   +-- InvalidAmountError
    |   +-- ArithmeticOverflowError
    |
    +-- SupplyError
    |   +-- SupplyClosedError
    |   +-- EmptySupplyNotMintableError
    |
    +-- TransferError
    |   +-- TransfersDisabledError
    |   +-- InsufficientFundsError
    |   +-- InsufficientAllowanceError
    |   +-- NotifierRejectedError
    |   +-- AlreadyReleasedError
    |
    +-- MigrationError
    |   +-- MigrationAlreadyActiveError
    |   +-- NoMigrationTargetError
    |   +-- TransferNotReleasedError
    |   +-- MigrationTargetRejectedError
    |
    +-- LifecycleViolationError
    +-- TokenNotFoundError
    +-- ConcurrencyError
    |   +-- ReentrantCallError
    |
    +-- LedgerIntegrityError
        +-- SupplyInvariantError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Authorization   | NOT_AUTHORIZED              | Caller lacks the required capability
----------------|-----------------------------|-----------------------------------------
Amount          | INVALID_AMOUNT              | Negative, non-integer or zero-where-forbidden
                | ARITHMETIC_OVERFLOW         | Result exceeds 2**256 - 1
----------------|-----------------------------|-----------------------------------------
Supply          | SUPPLY_CLOSED               | Minting after finish/release
                | EMPTY_SUPPLY_NOT_MINTABLE   | Non-mintable token with zero supply
----------------|-----------------------------|-----------------------------------------
Transfer        | TRANSFERS_DISABLED          | Transfer before release
                | INSUFFICIENT_FUNDS          | Balance lower than amount
                | INSUFFICIENT_ALLOWANCE      | transfer_from beyond approval
                | NOTIFIER_REJECTED           | Notifier reported failure
                | ALREADY_RELEASED            | Pre-release setting changed after release
----------------|-----------------------------|-----------------------------------------
Migration       | MIGRATION_ALREADY_ACTIVE    | Redesignation after a migration
                | NO_MIGRATION_TARGET         | Migrate with no target designated
                | TRANSFER_NOT_RELEASED       | Migrate before release
                | MIGRATION_TARGET_REJECTED   | Target credit call failed
----------------|-----------------------------|-----------------------------------------
Other           | LIFECYCLE_VIOLATION         | Monotonic flag moved backwards
                | TOKEN_NOT_FOUND             | Unknown token id
                | REENTRANT_CALL              | Outbound callback re-entered the ledger
                | SUPPLY_INVARIANT_VIOLATED   | sum(balances) != total_supply
                | IMMUTABILITY_VIOLATION      | UPDATE/DELETE on append-only rows

===============================================================================
"""


class TokenKernelError(Exception):
    """
    Base exception for all token kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TOKEN_KERNEL_ERROR"


# Authorization


class AuthorizationError(TokenKernelError):
    """Base exception for capability checks."""

    code: str = "AUTHORIZATION_ERROR"


class NotAuthorizedError(AuthorizationError):
    """Caller does not hold the capability required by the operation."""

    code: str = "NOT_AUTHORIZED"

    def __init__(self, caller: str, capability: str, operation: str):
        self.caller = caller
        self.capability = capability
        self.operation = operation
        super().__init__(
            f"{caller} is not the {capability}; cannot {operation}"
        )


# Amounts


class AmountError(TokenKernelError):
    """Base exception for amount validation and arithmetic."""

    code: str = "AMOUNT_ERROR"


class InvalidAmountError(AmountError):
    """Amount is not a non-negative integer, or is zero where forbidden."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str):
        self.amount = repr(amount)
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class ArithmeticOverflowError(AmountError):
    """Balance or supply arithmetic left the representable range."""

    code: str = "ARITHMETIC_OVERFLOW"

    def __init__(self, operation: str, left: int, right: int):
        self.operation = operation
        self.left = str(left)
        self.right = str(right)
        super().__init__(f"Arithmetic overflow: {left} {operation} {right}")


# Supply


class SupplyError(TokenKernelError):
    """Base exception for supply control errors."""

    code: str = "SUPPLY_ERROR"


class SupplyClosedError(SupplyError):
    """Minting has been permanently finished."""

    code: str = "SUPPLY_CLOSED"

    def __init__(self, token_id: str):
        self.token_id = token_id
        super().__init__(f"Minting is finished for token {token_id}")


class EmptySupplyNotMintableError(SupplyError):
    """A token with zero supply cannot be created with minting closed."""

    code: str = "EMPTY_SUPPLY_NOT_MINTABLE"

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(
            f"Token {symbol} has no initial supply and is not mintable"
        )


# Transfers


class TransferError(TokenKernelError):
    """Base exception for transfer errors."""

    code: str = "TRANSFER_ERROR"


class TransfersDisabledError(TransferError):
    """Transfers are not permitted until the token is released."""

    code: str = "TRANSFERS_DISABLED"

    def __init__(self, token_id: str, sender: str):
        self.token_id = token_id
        self.sender = sender
        super().__init__(
            f"Transfers from {sender} are disabled until token {token_id} is released"
        )


class InsufficientFundsError(TransferError):
    """Account balance is lower than the requested amount."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, account: str, balance: int, required: int):
        self.account = account
        self.balance = str(balance)
        self.required = str(required)
        super().__init__(
            f"Account {account} has {balance}, needs {required}"
        )


class InsufficientAllowanceError(TransferError):
    """Spender's approved allowance is lower than the requested amount."""

    code: str = "INSUFFICIENT_ALLOWANCE"

    def __init__(self, owner: str, spender: str, allowance: int, required: int):
        self.owner = owner
        self.spender = spender
        self.allowance = str(allowance)
        self.required = str(required)
        super().__init__(
            f"Spender {spender} may move {allowance} of {owner}'s balance, needs {required}"
        )


class NotifierRejectedError(TransferError):
    """The registered transfer notifier reported failure."""

    code: str = "NOTIFIER_REJECTED"

    def __init__(self, sender: str, recipient: str, amount: int, reason: str = ""):
        self.sender = sender
        self.recipient = recipient
        self.amount = str(amount)
        self.reason = reason
        msg = f"Notifier rejected transfer {sender} -> {recipient} of {amount}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AlreadyReleasedError(TransferError):
    """Pre-release configuration cannot change once transfers are open."""

    code: str = "ALREADY_RELEASED"

    def __init__(self, token_id: str, operation: str):
        self.token_id = token_id
        self.operation = operation
        super().__init__(
            f"Token {token_id} is already released; cannot {operation}"
        )


# Migration


class MigrationError(TokenKernelError):
    """Base exception for migration errors."""

    code: str = "MIGRATION_ERROR"


class MigrationAlreadyActiveError(MigrationError):
    """Target cannot be redesignated once any account has migrated."""

    code: str = "MIGRATION_ALREADY_ACTIVE"

    def __init__(self, token_id: str, total_migrated: int):
        self.token_id = token_id
        self.total_migrated = str(total_migrated)
        super().__init__(
            f"Token {token_id} already migrated {total_migrated}; target is locked"
        )


class NoMigrationTargetError(MigrationError):
    """No migration target has been designated."""

    code: str = "NO_MIGRATION_TARGET"

    def __init__(self, token_id: str):
        self.token_id = token_id
        super().__init__(f"No migration target designated for token {token_id}")


class TransferNotReleasedError(MigrationError):
    """Migration requires the transfer gate to be open."""

    code: str = "TRANSFER_NOT_RELEASED"

    def __init__(self, token_id: str):
        self.token_id = token_id
        super().__init__(f"Token {token_id} is not released; migration unavailable")


class MigrationTargetRejectedError(MigrationError):
    """The migration target's credit call reported failure."""

    code: str = "MIGRATION_TARGET_REJECTED"

    def __init__(self, target_id: str, account: str, amount: int, reason: str = ""):
        self.target_id = target_id
        self.account = account
        self.amount = str(amount)
        self.reason = reason
        msg = f"Migration target {target_id} rejected credit of {amount} for {account}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


# Lifecycle / lookup


class LifecycleViolationError(TokenKernelError):
    """A monotonic phase flag would move backwards."""

    code: str = "LIFECYCLE_VIOLATION"

    def __init__(self, flag: str):
        self.flag = flag
        super().__init__(f"Phase flag {flag} cannot be reverted")


class TokenNotFoundError(TokenKernelError):
    """Token with given ID was not found."""

    code: str = "TOKEN_NOT_FOUND"

    def __init__(self, token_id: str):
        self.token_id = token_id
        super().__init__(f"Token not found: {token_id}")


# Concurrency


class ConcurrencyError(TokenKernelError):
    """Base exception for serialization errors."""

    code: str = "CONCURRENCY_ERROR"


class ReentrantCallError(ConcurrencyError):
    """An outbound callback tried to call back into the ledger."""

    code: str = "REENTRANT_CALL"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Re-entrant call to {operation} while another ledger call is in progress"
        )


# Integrity


class LedgerIntegrityError(TokenKernelError):
    """Base exception for stored-state integrity failures."""

    code: str = "INTEGRITY_ERROR"


class SupplyInvariantError(LedgerIntegrityError):
    """Sum of balances no longer equals total supply."""

    code: str = "SUPPLY_INVARIANT_VIOLATED"

    def __init__(self, token_id: str, total_supply: int, balance_sum: int):
        self.token_id = token_id
        self.total_supply = str(total_supply)
        self.balance_sum = str(balance_sum)
        super().__init__(
            f"Token {token_id}: balances sum to {balance_sum}, supply is {total_supply}"
        )


class ImmutabilityViolationError(LedgerIntegrityError):
    """Attempt to modify an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )
