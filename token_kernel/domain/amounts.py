"""
Amounts -- checked unsigned 256-bit arithmetic.

Responsibility:
    Validates caller-supplied amounts and performs every balance and
    supply computation with explicit range checks, so no value ever
    wraps or goes negative.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    CHECKED_ARITHMETIC -- results stay within [0, UINT256_MAX].

Failure modes:
    - InvalidAmountError: not an int (bools rejected), negative, or zero
      where the operation forbids it.
    - ArithmeticOverflowError: sum above UINT256_MAX or difference below 0.
"""

from token_kernel.exceptions import ArithmeticOverflowError, InvalidAmountError

UINT256_MAX = (1 << 256) - 1


def require_amount(value: object, *, allow_zero: bool = True) -> int:
    """
    Validate a caller-supplied amount.

    Returns:
        The amount as ``int``.

    Raises:
        InvalidAmountError: value is not a plain int, is negative, or is
            zero while ``allow_zero`` is False.
        ArithmeticOverflowError: value exceeds UINT256_MAX.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(value, "amount must be an integer")
    if value < 0:
        raise InvalidAmountError(value, "amount must not be negative")
    if value == 0 and not allow_zero:
        raise InvalidAmountError(value, "amount must be greater than zero")
    if value > UINT256_MAX:
        raise ArithmeticOverflowError("range", value, UINT256_MAX)
    return value


def checked_add(left: int, right: int) -> int:
    """Return ``left + right`` or raise ArithmeticOverflowError."""
    result = left + right
    if result > UINT256_MAX:
        raise ArithmeticOverflowError("+", left, right)
    return result


def checked_sub(left: int, right: int) -> int:
    """Return ``left - right`` or raise ArithmeticOverflowError on underflow."""
    if right > left:
        raise ArithmeticOverflowError("-", left, right)
    return left - right


def require_account(account: object) -> str:
    """Account identities are opaque, non-empty strings."""
    if not isinstance(account, str) or not account:
        raise ValueError(f"Account identity must be a non-empty string, got {account!r}")
    return account
