"""
BaseService -- abstract base for kernel services that write.

Services receive a SQLAlchemy ``Session`` and persist with
``session.flush()``, never ``session.commit()``.  The caller owns the
transaction: AssetServiceFacade commits or rolls back around a whole
create/update, and BulkDeletionOrchestrator owns its own sessions.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from asset_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-only listings; those belong in selectors/.
    """

    def __init__(self, session: Session):
        self.session = session
