from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Generic, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from storefront.core.exceptions import DatabaseError, ValidationError

T = TypeVar('T')

logger = logging.getLogger(__name__)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository over a SQLAlchemy session.

    Repositories never commit. They flush so constraint violations surface
    inside the caller's transaction, and translate driver errors into the
    API exception hierarchy:
    - IntegrityError  -> ValidationError (uniqueness, check constraints)
    - SQLAlchemyError -> DatabaseError
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def model(self) -> Type[T]:
        """Mapped class handled by this repository"""
        pass

    @property
    def resource_name(self) -> str:
        return self.model.__name__

    @contextmanager
    def write_operation(self, operation: str) -> Iterator[None]:
        """Flush pending changes, rolling the session back on failure"""
        try:
            yield
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            logger.error(f"Integrity constraint violation during {operation}: {e.orig}")
            raise ValidationError(
                f"{self.resource_name} violates a uniqueness or integrity rule",
                [{"field": self.resource_name.lower(), "message": str(e.orig), "code": "INTEGRITY_ERROR"}],
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Write failed during {operation}: {e}")
            raise DatabaseError(f"{operation} failed: {e}", "WRITE")

    def scalars(self, statement: Select) -> List[Any]:
        try:
            return list(self.session.scalars(statement).unique())
        except SQLAlchemyError as e:
            logger.error(f"Query execution failed: {statement}, Error: {e}")
            raise DatabaseError("Query execution failed", "SELECT")

    def scalar(self, statement: Select) -> Any:
        try:
            return self.session.scalars(statement).first()
        except SQLAlchemyError as e:
            logger.error(f"Single query execution failed: {statement}, Error: {e}")
            raise DatabaseError("Single query execution failed", "SELECT")

    def get_by_id(self, entity_id: int) -> Optional[T]:
        try:
            return self.session.get(self.model, entity_id)
        except SQLAlchemyError as e:
            logger.error(f"Lookup of {self.resource_name} {entity_id} failed: {e}")
            raise DatabaseError(f"Lookup of {self.resource_name} failed", "SELECT")

    def add(self, entity: T) -> T:
        with self.write_operation(f"insert {self.resource_name}"):
            self.session.add(entity)
        return entity

    def paginate(self, statement: Select, limit: int, after: Optional[int] = None) -> Tuple[Sequence[T], Optional[int]]:
        """
        Keyset pagination on the primary key. Fetches limit + 1 rows to
        learn whether another page exists.
        """
        id_column = self.model.id
        if after is not None:
            statement = statement.where(id_column > after)
        rows = self.scalars(statement.order_by(id_column).limit(limit + 1))

        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = page[-1].id if has_more and page else None
        return page, next_cursor

    def paginate_offset(self, statement: Select, limit: int, offset: int = 0) -> Tuple[Sequence[T], Optional[int]]:
        """Offset pagination for orderings other than the primary key"""
        rows = self.scalars(statement.offset(offset).limit(limit + 1))
        page = rows[:limit]
        next_offset = offset + limit if len(rows) > limit else None
        return page, next_offset

    def commit(self, operation: str) -> None:
        """Commit the unit of work, translating driver errors like write_operation does"""
        with self.write_operation(operation):
            pass
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Commit failed during {operation}: {e}")
            raise DatabaseError(f"{operation} commit failed: {e}", "COMMIT")
