"""
ORM-level immutability enforcement.

History entries are append-only and identifiers are never changed in place.
SQLAlchemy fires mapper events before an UPDATE or DELETE reaches the
database; the listeners below raise ImmutabilityViolationError so the flush
aborts and nothing is written.

    session.flush()
         |
         v
    [before_update] --> _check_*_update() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Entity             | Rule
-------------------|------------------------------------------------------
DeviceHistory      | No ORM update or delete, ever
WirelessApHistory  | No ORM update or delete, ever
Identifier         | Key columns frozen after insert; no ORM delete

Set-based deletes issued through Core (``session.execute(delete(...))``)
do not fire mapper events.  Tenant purges, asset deletion and retention
purges use that path on purpose; nothing else deletes history.

Usage:

    from asset_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from asset_kernel.exceptions import ImmutabilityViolationError
from asset_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_IDENTIFIER_KEY_FIELDS = ("tenant_id", "kind", "category", "year", "year_key", "sequence")


def _blocked(entity_type: str, entity_id, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "reason": reason,
        },
    )
    return ImmutabilityViolationError(entity_type, str(entity_id), reason)


def _check_history_update(mapper, connection, target):
    raise _blocked(
        type(target).__name__, target.id, "UPDATE",
        "history entries are append-only",
    )


def _check_history_delete(mapper, connection, target):
    raise _blocked(
        type(target).__name__, target.id, "DELETE",
        "history entries can only be removed by bulk purge",
    )


def _check_identifier_update(mapper, connection, target):
    changed = [
        name for name in _IDENTIFIER_KEY_FIELDS
        if get_history(target, name).has_changes()
    ]
    if changed:
        raise _blocked(
            "Identifier", target.id, "UPDATE",
            f"identifier keys are immutable (attempted: {', '.join(changed)})",
        )


def _check_identifier_delete(mapper, connection, target):
    raise _blocked(
        "Identifier", target.id, "DELETE",
        "identifier numbers are never released",
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    from asset_kernel.models.history import DeviceHistory, WirelessApHistory
    from asset_kernel.models.identifier import Identifier

    for model in (DeviceHistory, WirelessApHistory):
        if not event.contains(model, "before_update", _check_history_update):
            event.listen(model, "before_update", _check_history_update)
        if not event.contains(model, "before_delete", _check_history_delete):
            event.listen(model, "before_delete", _check_history_delete)

    if not event.contains(Identifier, "before_update", _check_identifier_update):
        event.listen(Identifier, "before_update", _check_identifier_update)
    if not event.contains(Identifier, "before_delete", _check_identifier_delete):
        event.listen(Identifier, "before_delete", _check_identifier_delete)

    logger.debug("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    from asset_kernel.models.history import DeviceHistory, WirelessApHistory
    from asset_kernel.models.identifier import Identifier

    for model in (DeviceHistory, WirelessApHistory):
        _safe_remove_listener(model, "before_update", _check_history_update)
        _safe_remove_listener(model, "before_delete", _check_history_delete)

    _safe_remove_listener(Identifier, "before_update", _check_identifier_update)
    _safe_remove_listener(Identifier, "before_delete", _check_identifier_delete)
