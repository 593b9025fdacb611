"""
Token Kernel

A fungible value ledger with layered lifecycle gating:
- Permanently closable supply creation (minting)
- Permanently openable transfer gate (release)
- Per-account, irreversible migration to a successor system
- Atomic calls: every operation commits in full or not at all
"""

__version__ = "0.1.0"
