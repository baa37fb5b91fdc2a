"""
Entity Store

Thin façade over a SQLModel session exposing the storage contract the
structuring engine is written against:

    insert(row) -> id            ConstraintViolation on uniqueness breach
    update(model, id, patch)     NotFound if id absent; optional version check
    delete(model, *filters)      -> count
    query(model, *filters)       -> rows
    count(model, *filters)       -> int

Every SQLAlchemy failure leaves the session rolled back and surfaces as a
service error (IntegrityError -> ConstraintViolation, anything else ->
StoreError). Writes are flushed immediately and committed by the outermost
transaction() block.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, func, select

from app.services.errors import ConstraintViolation, NotFound, StoreError
from app.utils.sql import scalar_int

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)


class EntityStore:
    def __init__(self, session: Session):
        self.session = session
        self._depth = 0

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        """Commit on success of the outermost block, roll back on any error."""
        self._depth += 1
        try:
            with self._translate_errors():
                yield self
                if self._depth == 1:
                    self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._depth -= 1

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as e:
            self.session.rollback()
            raise ConstraintViolation(f"Constraint violation: {e.orig}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Store failure: %s", e)
            raise StoreError(f"Store failure: {e}") from e

    def _autocommit(self) -> None:
        if self._depth == 0:
            self.session.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, model: Type[ModelT], row_id: int) -> Optional[ModelT]:
        with self._translate_errors():
            return self.session.get(model, row_id)

    def get_or_404(self, model: Type[ModelT], row_id: Optional[int], label: Optional[str] = None) -> ModelT:
        row = self.get(model, row_id) if row_id is not None else None
        if row is None:
            raise NotFound(f"{label or model.__name__} {row_id} not found")
        return row

    def query(self, model: Type[ModelT], *filters: Any, order_by: Sequence[Any] = ()) -> List[ModelT]:
        statement = select(model)
        if filters:
            statement = statement.where(*filters)
        if order_by:
            statement = statement.order_by(*order_by)
        with self._translate_errors():
            return list(self.session.exec(statement).all())

    def first(self, model: Type[ModelT], *filters: Any) -> Optional[ModelT]:
        with self._translate_errors():
            return self.session.exec(select(model).where(*filters)).first()

    def count(self, model: Type[ModelT], *filters: Any) -> int:
        statement = select(func.count()).select_from(model)
        if filters:
            statement = statement.where(*filters)
        with self._translate_errors():
            return scalar_int(self.session.exec(statement).one())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, row: ModelT) -> int:
        with self._translate_errors():
            self.session.add(row)
            self.session.flush()
            self._autocommit()
        return row.id

    def update(
        self,
        model: Type[ModelT],
        row_id: int,
        patch: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> None:
        """
        Apply `patch` to one row.

        Versioned models (those with a `version` column) get their version
        bumped; when `expected_version` is given the write only lands if the
        stored version still matches, otherwise ConstraintViolation("stale write").
        """
        values = dict(patch)
        statement = sa_update(model).where(model.id == row_id)
        versioned = hasattr(model, "version")
        if versioned:
            values["version"] = model.version + 1
            if expected_version is not None:
                statement = statement.where(model.version == expected_version)

        with self._translate_errors():
            result = self.session.execute(statement.values(**values))
            if result.rowcount == 0:
                if self.session.get(model, row_id) is None:
                    raise NotFound(f"{model.__name__} {row_id} not found")
                raise ConstraintViolation(
                    f"stale write: {model.__name__} {row_id} changed since version {expected_version}"
                )
            self._autocommit()

        existing = self.session.get(model, row_id)
        if existing is not None:
            self.session.refresh(existing)

    def delete(self, model: Type[ModelT], *filters: Any) -> int:
        """Delete-if-exists; returns how many rows went away."""
        statement = sa_delete(model)
        if filters:
            statement = statement.where(*filters)
        with self._translate_errors():
            result = self.session.execute(statement.execution_options(synchronize_session="fetch"))
            self._autocommit()
        return result.rowcount or 0
