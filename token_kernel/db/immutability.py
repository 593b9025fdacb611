"""
ORM-level immutability for the token audit trail.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | When Immutable          | Why
------------------|-------------------------|-----------------------------------
LedgerEvent       | ALWAYS (from creation)  | The event log is the audit trail
MigrationRecord   | ALWAYS (from creation)  | Migration is irreversible

SQLAlchemy fires mapper events before UPDATE/DELETE statements are sent:

    session.flush()
         |
         v
    [before_update] --> _reject_update() --> ImmutabilityViolationError
    [before_delete] --> _reject_delete() --> ImmutabilityViolationError

The flush aborts and the enclosing session_scope() rolls back.  Bulk SQL
(``session.execute(update(...))``) bypasses mapper events and is not
covered here.

===============================================================================
USAGE
===============================================================================

Registered by init_engine_from_url() and create_tables():

    from token_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from token_kernel.exceptions import ImmutabilityViolationError
from token_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(target, operation: str) -> None:
    entity_type = type(target).__name__
    entity_id = str(target.id)
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=f"{entity_type} rows are append-only ({operation} refused)",
    )


def _reject_update(mapper, connection, target):
    _block(target, "UPDATE")


def _reject_delete(mapper, connection, target):
    _block(target, "DELETE")


def _protected_models() -> tuple:
    from token_kernel.models.ledger_event import LedgerEvent
    from token_kernel.models.migration import MigrationRecord

    return (LedgerEvent, MigrationRecord)


def register_immutability_listeners() -> None:
    """Attach the append-only listeners.  Safe to call more than once."""
    for model in _protected_models():
        if not event.contains(model, "before_update", _reject_update):
            event.listen(model, "before_update", _reject_update)
        if not event.contains(model, "before_delete", _reject_delete):
            event.listen(model, "before_delete", _reject_delete)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Detach the listeners.  FOR TESTING ONLY."""
    for model in _protected_models():
        if event.contains(model, "before_update", _reject_update):
            event.remove(model, "before_update", _reject_update)
        if event.contains(model, "before_delete", _reject_delete):
            event.remove(model, "before_delete", _reject_delete)
    logger.debug("immutability_listeners_unregistered")
