"""
Base repository with strict business (tenant) isolation.

CRITICAL: All database operations on tenant-scoped models MUST include
business_id. No query can access data across businesses.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, List, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from que_accounting.db_base import Base

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T], ABC):
    """
    Base repository with mandatory business_id enforcement.

    All queries are automatically scoped by business_id. Writes are flushed,
    not committed; the request boundary owns the transaction.
    """

    def __init__(self, db_session: Session, business_id: str):
        """
        Initialize repository with tenant context.

        Args:
            db_session: SQLAlchemy database session
            business_id: Business identifier (from the resolved tenant context)

        Raises:
            ValueError: If business_id is empty or None
        """
        if not business_id:
            raise ValueError("business_id is required and cannot be empty")

        self.db_session = db_session
        self.business_id = business_id
        self._model_class = self._get_model_class()

    @abstractmethod
    def _get_model_class(self) -> type:
        """Return the SQLAlchemy model class for this repository."""
        pass

    def _business_column(self):
        return getattr(self._model_class, "business_id")

    def _scoped_query(self):
        """Query for the model, always filtered to this business."""
        return self.db_session.query(self._model_class).filter(
            self._business_column() == self.business_id
        )

    def get_by_id(self, entity_id: str) -> Optional[T]:
        """Get entity by ID, scoped to the business."""
        return self._scoped_query().filter(self._model_class.id == entity_id).first()

    def get_all(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        newest_first: bool = True,
    ) -> List[T]:
        """Get all entities for the business."""
        query = self._scoped_query()
        created = getattr(self._model_class, "created_at", None)
        if created is not None:
            query = query.order_by(created.desc() if newest_first else created.asc())
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def create(self, entity_data: dict) -> T:
        """
        Create new entity with business_id enforced.

        SECURITY: business_id in entity_data is IGNORED; the repository
        business_id is ALWAYS used.
        """
        entity_data = dict(entity_data)
        if "business_id" in entity_data:
            logger.warning(
                "business_id found in entity_data, removing it",
                extra={
                    "repository_business_id": self.business_id,
                    "removed_business_id": entity_data.pop("business_id"),
                },
            )

        entity = self._model_class(business_id=self.business_id, **entity_data)
        self.db_session.add(entity)
        try:
            self.db_session.flush()
        except SQLAlchemyError:
            logger.error(
                "Failed to create entity",
                extra={"business_id": self.business_id, "entity_type": self._model_class.__name__},
                exc_info=True,
            )
            raise

        logger.info(
            "Entity created",
            extra={
                "business_id": self.business_id,
                "entity_id": getattr(entity, "id", None),
                "entity_type": self._model_class.__name__,
            },
        )
        return entity

    def update(self, entity_id: str, entity_data: dict) -> Optional[T]:
        """
        Update an entity of this business; returns None if not found here.

        SECURITY: id and business_id cannot be changed through entity_data.
        """
        entity = self.get_by_id(entity_id)
        if entity is None:
            return None

        for key, value in entity_data.items():
            if key in ("id", "business_id"):
                continue
            if hasattr(entity, key):
                setattr(entity, key, value)

        self.db_session.flush()
        return entity

    def delete(self, entity_id: str) -> bool:
        """Delete an entity of this business; False if not found here."""
        entity = self.get_by_id(entity_id)
        if entity is None:
            return False
        self.db_session.delete(entity)
        self.db_session.flush()
        logger.info(
            "Entity deleted",
            extra={
                "business_id": self.business_id,
                "entity_id": entity_id,
                "entity_type": self._model_class.__name__,
            },
        )
        return True
