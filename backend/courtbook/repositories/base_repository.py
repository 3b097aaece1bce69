# backend/courtbook/repositories/base_repository.py
"""
Generic data access shared by the booking, token pool and outbox repositories.

Writes only flush; a commit happens when the caller leaves transaction()
or BaseService.transaction(). Transient OperationalErrors are re-raised untouched so a whole
transaction can be replayed by with_db_retry; other SQLAlchemyErrors become
RepositoryException.
"""

from contextlib import contextmanager
import logging
from typing import Any, Dict, Generic, Iterator, List, NoReturn, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Single-model repository bound to the request's session.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize repository with database session and model.

        Args:
            db: SQLAlchemy session (managed by service layer)
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit on success, roll back on any error.

        Unlike BaseService.transaction the original SQLAlchemy error is
        re-raised, so callers can tell constraint violations from transient
        failures.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.logger.error("Repository transaction failed: %s", exc)
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            raise

    def _raise_repository_error(self, action: str, exc: SQLAlchemyError) -> NoReturn:
        if isinstance(exc, OperationalError):
            raise exc
        self.logger.error(f"Error {action} {self.model.__name__}: {str(exc)}")
        raise RepositoryException(f"Failed {action} {self.model.__name__}: {str(exc)}") from exc

    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key."""
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self._raise_repository_error("getting", e)

    def create(self, **kwargs) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()  # Get ID without committing
            return entity
        except IntegrityError as exc:
            self.logger.error("Integrity error creating %s: %s", self.model.__name__, exc)
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self._raise_repository_error("creating", e)

    def update(self, id: str, **kwargs) -> Optional[T]:
        """
        Update an existing entity.

        Only updates provided fields, preserves others.
        """
        try:
            entity = self.get_by_id(id)
            if not entity:
                return None

            for key, value in kwargs.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)

            self.db.flush()
            return entity
        except SQLAlchemyError as e:
            self._raise_repository_error("updating", e)

    def find_one_by(self, **kwargs) -> Optional[T]:
        """Find a single entity by given criteria."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            self._raise_repository_error("finding", e)

    def bulk_create(self, entities: List[Dict[str, Any]]) -> List[T]:
        """
        Add several entities and flush once.

        IntegrityError propagates so callers can map unique violations to
        domain conflicts.
        """
        try:
            db_entities = [self.model(**data) for data in entities]
            self.db.add_all(db_entities)
            self.db.flush()
            return db_entities
        except SQLAlchemyError as e:
            if isinstance(e, IntegrityError):
                raise
            self._raise_repository_error("bulk creating", e)
