"""
Base repository class with common CRUD operations using async SQLAlchemy.
Provides generic database operations that can be extended by specific repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from marketplace_api.database import Base
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type
import uuid
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class providing common CRUD operations.

    With ``auto_commit`` enabled every write commits on its own. Services that
    span several writes construct repositories with ``auto_commit=False`` and
    own the commit/rollback themselves; writes are then only flushed.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession, auto_commit: bool = True):
        """
        Initialize repository with model class and database session.

        Args:
            model: SQLAlchemy model class
            db: Async database session
            auto_commit: Commit after each write instead of only flushing
        """
        self.model = model
        self.db = db
        self.auto_commit = auto_commit

    async def _persist(self) -> None:
        if self.auto_commit:
            await self.db.commit()
        else:
            await self.db.flush()

    async def _discard(self) -> None:
        if self.auto_commit:
            await self.db.rollback()

    async def create(self, obj_in: Dict[str, Any]) -> ModelType:
        """
        Create a new record in the database.

        Args:
            obj_in: Dictionary of field values for the new record

        Returns:
            Created model instance
        """
        try:
            db_obj = self.model(**obj_in)
            self.db.add(db_obj)
            await self._persist()
            await self.db.refresh(db_obj)
            logger.debug(f"Created {self.model.__name__} with id: {db_obj.id}")
            return db_obj
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to create {self.model.__name__}: {e}")
            raise

    async def get_by_id(self, id: uuid.UUID) -> Optional[ModelType]:
        """
        Get a record by its ID.

        Args:
            id: UUID of the record to retrieve

        Returns:
            Model instance if found, None otherwise
        """
        try:
            query = select(self.model).where(self.model.id == id)
            result = await self.db.execute(query)
            obj = result.scalar_one_or_none()

            if obj:
                logger.debug(f"Retrieved {self.model.__name__} with id: {id}")
            else:
                logger.debug(f"{self.model.__name__} with id {id} not found")

            return obj
        except Exception as e:
            logger.error(f"Failed to get {self.model.__name__} by id {id}: {e}")
            raise

    async def get_multi(
        self,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None
    ) -> List[ModelType]:
        """
        Get multiple records with optional filtering, pagination, and ordering.

        Args:
            skip: Number of records to skip (for pagination)
            limit: Maximum number of records to return
            filters: Dictionary of field filters
            order_by: Field name to order by (prefix with '-' for descending)

        Returns:
            List of model instances
        """
        try:
            query = select(self.model)

            if filters:
                for field, value in filters.items():
                    if hasattr(self.model, field):
                        if isinstance(value, list):
                            query = query.where(getattr(self.model, field).in_(value))
                        else:
                            query = query.where(getattr(self.model, field) == value)

            if order_by:
                if order_by.startswith('-'):
                    field_name = order_by[1:]
                    if hasattr(self.model, field_name):
                        query = query.order_by(getattr(self.model, field_name).desc())
                else:
                    if hasattr(self.model, order_by):
                        query = query.order_by(getattr(self.model, order_by))
            else:
                query = query.order_by(self.model.created_at.desc())

            query = query.offset(skip).limit(limit)

            result = await self.db.execute(query)
            objects = result.scalars().all()

            logger.debug(f"Retrieved {len(objects)} {self.model.__name__} records")
            return list(objects)
        except Exception as e:
            logger.error(f"Failed to get multiple {self.model.__name__} records: {e}")
            raise

    async def update(self, id: uuid.UUID, obj_in: Dict[str, Any]) -> Optional[ModelType]:
        """
        Update a record by its ID.

        Args:
            id: UUID of the record to update
            obj_in: Dictionary of field values to update; None values are ignored

        Returns:
            Updated model instance if found, None otherwise
        """
        try:
            update_data = {k: v for k, v in obj_in.items() if v is not None}

            if not update_data:
                logger.debug(f"No data provided for updating {self.model.__name__} {id}")
                return await self.get_by_id(id)

            stmt = update(self.model).where(self.model.id == id).values(**update_data)
            result = await self.db.execute(stmt)

            if result.rowcount == 0:
                logger.debug(f"{self.model.__name__} with id {id} not found for update")
                return None

            await self._persist()

            updated_obj = await self.get_by_id(id)
            logger.debug(f"Updated {self.model.__name__} with id: {id}")
            return updated_obj
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to update {self.model.__name__} {id}: {e}")
            raise

    async def delete(self, id: uuid.UUID) -> bool:
        """
        Delete a record by its ID.

        Args:
            id: UUID of the record to delete

        Returns:
            True if record was deleted, False if not found
        """
        try:
            stmt = delete(self.model).where(self.model.id == id)
            result = await self.db.execute(stmt)
            await self._persist()

            deleted = result.rowcount > 0
            if deleted:
                logger.debug(f"Deleted {self.model.__name__} with id: {id}")
            else:
                logger.debug(f"{self.model.__name__} with id {id} not found for deletion")

            return deleted
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to delete {self.model.__name__} {id}: {e}")
            raise

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """
        Count records with optional filtering.

        Args:
            filters: Dictionary of field filters; None values match SQL NULL

        Returns:
            Number of matching records
        """
        try:
            query = select(func.count(self.model.id))

            if filters:
                for field, value in filters.items():
                    column = getattr(self.model, field)
                    if value is None:
                        query = query.where(column.is_(None))
                    elif isinstance(value, list):
                        query = query.where(column.in_(value))
                    else:
                        query = query.where(column == value)

            result = await self.db.execute(query)
            count = result.scalar()

            logger.debug(f"Counted {count} {self.model.__name__} records")
            return count
        except Exception as e:
            logger.error(f"Failed to count {self.model.__name__} records: {e}")
            raise

    async def exists(self, id: uuid.UUID) -> bool:
        """Check if a record exists by its ID."""
        try:
            query = select(func.count(self.model.id)).where(self.model.id == id)
            result = await self.db.execute(query)
            return result.scalar() > 0
        except Exception as e:
            logger.error(f"Failed to check existence of {self.model.__name__} {id}: {e}")
            raise

    async def bulk_delete(self, ids: List[uuid.UUID]) -> int:
        """
        Delete multiple records by their IDs in a single transaction.

        Args:
            ids: List of UUIDs to delete

        Returns:
            Number of records deleted
        """
        if not ids:
            return 0

        try:
            stmt = delete(self.model).where(self.model.id.in_(ids))
            result = await self.db.execute(stmt)
            await self._persist()

            deleted_count = result.rowcount
            logger.debug(f"Bulk deleted {deleted_count} {self.model.__name__} records")
            return deleted_count
        except Exception as e:
            await self._discard()
            logger.error(f"Failed to bulk delete {self.model.__name__} records: {e}")
            raise
