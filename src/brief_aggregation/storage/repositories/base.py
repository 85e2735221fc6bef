"""
Generic repository with the CRUD operations every table needs.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy import asc, desc
from sqlalchemy.orm import Session

from brief_aggregation.models import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Repository base class.

    Subclasses pass their ORM model to ``__init__`` and add the queries
    specific to their table.
    """

    def __init__(self, session: Session, model: type[ModelType]) -> None:
        """Initialize repository.

        Args:
            session: SQLAlchemy Session instance
            model: ORM model class managed by this repository
        """
        self.session = session
        self.model = model

    def get_by_id(self, id: int) -> Optional[ModelType]:
        """Get a row by primary key."""
        return self.session.get(self.model, id)

    def list(
        self,
        limit: int = 100,
        offset: int = 0,
        order_by: str = "id",
        order_desc: bool = False,
        **filters: Any,
    ) -> list[ModelType]:
        """List rows with equality filters.

        Args:
            limit: Maximum number of results
            offset: Number of results to skip
            order_by: Column to order by
            order_desc: Sort in descending order
            **filters: Column equality filters

        Returns:
            List of model instances
        """
        query = self.session.query(self.model)
        for column, value in filters.items():
            query = query.filter(getattr(self.model, column) == value)

        order_column = getattr(self.model, order_by)
        query = query.order_by(desc(order_column) if order_desc else asc(order_column))

        return query.offset(offset).limit(limit).all()

    def count(self, **filters: Any) -> int:
        """Count rows with equality filters."""
        query = self.session.query(self.model)
        for column, value in filters.items():
            query = query.filter(getattr(self.model, column) == value)
        return query.count()

    def create(self, obj_in: CreateSchemaType) -> ModelType:
        """Insert a row built from a create schema."""
        db_obj = self.model(**obj_in.model_dump(exclude_none=True))
        self.session.add(db_obj)
        self.session.flush()
        self.session.refresh(db_obj)
        return db_obj

    def update(self, db_obj: ModelType, obj_in: UpdateSchemaType) -> ModelType:
        """Apply the fields explicitly set on an update schema."""
        for field, value in obj_in.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)
        self.session.flush()
        self.session.refresh(db_obj)
        return db_obj

    def delete(self, db_obj: ModelType) -> None:
        """Delete a row."""
        self.session.delete(db_obj)
        self.session.flush()
