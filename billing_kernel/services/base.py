"""
BaseService -- abstract base for kernel services that write.

Services receive the caller's SQLAlchemy ``Session`` and only ever call
``session.flush()``.  The caller (``session_scope()``, the billing runner
or a test) owns commit and rollback, so claiming charges, allocating a folio
and inserting the boleta commit or roll back together.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from billing_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Holds the caller's session.  Never commits or rolls back."""

    def __init__(self, session: Session):
        self.session = session
