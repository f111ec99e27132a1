# blog_posts/repositories/base.py
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Generic, Tuple, TypeVar

from blog_posts.database import BlogDatabase

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository class defining the standard CRUD interface."""

    # Columns a caller may write through create()/update(), keyed by field name
    columns: Dict[str, str] = {}

    def __init__(self, db: BlogDatabase):
        self.db = db

    @abstractmethod
    async def get_by_id(self, entity_id: int) -> Optional[T]:
        """Retrieve a single entity by its ID."""
        pass

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> T:
        """Create a new entity and return it."""
        pass

    @abstractmethod
    async def update(
        self, entity_id: int, data: Dict[str, Any]
    ) -> Optional[T]:
        """Update an existing entity and return the updated version."""
        pass

    @abstractmethod
    async def delete(self, entity_id: int) -> bool:
        """Delete an entity. Returns True if successful."""
        pass

    def _assignments(self, data: Dict[str, Any]) -> Tuple[List[str], List[Any]]:
        """Turn a partial payload into `column = ?` fragments, skipping unknown fields."""
        fields = []
        params = []
        for key, value in data.items():
            column = self.columns.get(key)
            if column is None:
                continue
            fields.append(f"{column} = ?")
            params.append(value)
        return fields, params
