"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every kernel
    service.  Services receive a SQLAlchemy ``Session`` and persist via
    ``session.flush()``, never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    Transaction boundaries: kernel services flush within the caller's
    transaction and never commit or roll back.  Module services
    (``stock_modules``) own commit/rollback.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stock_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; savepoints it opens are its own.

    Non-goals:
        - Query-only (read) methods belong in ``stock_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
