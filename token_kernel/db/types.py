"""
Module: token_kernel.db.types
Responsibility: Annotated type aliases for column types shared by the models,
    so every table uses identical widths for account identities, symbols and
    sequence numbers.
Architecture position: Kernel > DB.  MUST NOT import from models/, domain/,
    services/ or selectors/.
"""

from typing import Annotated

from sqlalchemy import BigInteger, String

# Opaque account identity (address-like token)
AccountId = Annotated[str, String(128)]

# Display name of a token
TokenName = Annotated[str, String(200)]

# Ticker symbol
TokenSymbol = Annotated[str, String(32)]

# Monotonic sequence number for ordering
Sequence = Annotated[int, BigInteger]

# Short enum-like codes
ShortCode = Annotated[str, String(50)]
