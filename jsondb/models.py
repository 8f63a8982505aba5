"""Type-safe record models for JsonDB using Pydantic."""

import re
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .database import Database


class JsonDBModel(BaseModel):
    """Base class for typed records.

    Subclasses declare the fields they care about; unknown fields read from
    the file are kept so that an update does not drop them.
    """

    model_config = ConfigDict(
        extra='allow',
        validate_assignment=True,
        populate_by_name=True
    )

    id: Optional[int] = Field(None, description="Row identifier")

    __table_name__: str = ""

    @classmethod
    def get_table_name(cls) -> str:
        """Get the table name for this model."""
        if cls.__table_name__:
            return cls.__table_name__
        # Convert class name to snake_case
        name = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', cls.__name__)
        return re.sub('([a-z0-9])([A-Z])', r'\1_\2', name).lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a record for database operations."""
        data = self.model_dump(mode='json')
        if data.get('id') is None:
            data.pop('id', None)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JsonDBModel':
        """Create a model instance from a record."""
        return cls.model_validate(data)


M = TypeVar('M', bound=JsonDBModel)


class TypedTable(Generic[M]):
    """
    One table of a Database viewed through a model class.

    Examples:
        class User(JsonDBModel):
            name: str
            email: Optional[str] = None

        users = TypedTable(db, User)          # table 'user'
        users = TypedTable(db, User, 'users')
        alice = users.insert(User(name='Alice'))
        users.find(name='Alice')
    """

    def __init__(self, db: Database, model: Type[M], table: Optional[str] = None):
        self.db = db
        self.model = model
        self.table = table or model.get_table_name()

    def _wrap(self, record: Optional[Dict[str, Any]]) -> Optional[M]:
        if record is None:
            return None
        return self.model.from_dict(record)

    def insert(self, item: M) -> M:
        return self._wrap(self.db.insert(item.to_dict(), self.table))

    def insert_many(self, items: List[M]) -> List[M]:
        records = self.db.insert_many([item.to_dict() for item in items], self.table)
        return [self._wrap(record) for record in records]

    def get(self, row_id: int) -> Optional[M]:
        return self._wrap(self.db.get(row_id, self.table))

    def all(self) -> List[M]:
        return [self._wrap(record) for record in self.db.get_all(self.table)]

    def find(self, **where: Any) -> List[M]:
        """Rows whose fields equal the given keyword values."""
        return [self._wrap(record) for record in self.db.get_rows(where, self.table)]

    def update(self, item: M) -> M:
        """Replace the stored row that has ``item.id``."""
        if item.id is None:
            raise ValueError("Cannot update a model without an id")
        return self._wrap(self.db.update(item.to_dict(), self.table))

    def save(self, item: M) -> M:
        """Insert items without an id, update the others."""
        if item.id is None:
            return self.insert(item)
        return self.update(item)

    def delete(self, item_or_id: M | int) -> None:
        row_id = item_or_id.id if isinstance(item_or_id, JsonDBModel) else item_or_id
        if row_id is None:
            raise ValueError("Cannot delete a model without an id")
        self.db.delete(row_id, self.table)

    def count(self) -> int:
        return self.db.count(self.table)

    def clear(self) -> None:
        self.db.clear(self.table)
