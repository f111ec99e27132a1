# blog_posts/repositories/category_repository.py
import logging
import sqlite3
from typing import Optional, List, Dict, Any

import asyncpg

from blog_posts.database import utcnow, to_iso
from blog_posts.errors import Conflict
from blog_posts.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

COLUMNS = """
    id, parent_id, group_name, value, label, description, icon_name, color, path,
    is_active, sort_order, created_at, updated_at
"""
ORDER_BY = " ORDER BY sort_order ASC, created_at ASC, id ASC"

# Store-level uniqueness violations from either backend
UNIQUE_VIOLATIONS = (sqlite3.IntegrityError, asyncpg.exceptions.UniqueViolationError)


class CategoryRepository(BaseRepository[Dict]):
    """Repository for Category entity operations."""

    columns = {
        "parent_id": "parent_id",
        "group": "group_name",
        "value": "value",
        "label": "label",
        "description": "description",
        "icon_name": "icon_name",
        "color": "color",
        "path": "path",
        "is_active": "is_active",
        "sort_order": "sort_order",
    }

    @staticmethod
    def _to_dict(row: Optional[Dict]) -> Optional[Dict]:
        if row is None:
            return None
        category = dict(row)
        category["group"] = category.pop("group_name", None)
        category["is_active"] = bool(category["is_active"])
        category["created_at"] = to_iso(category.get("created_at"))
        category["updated_at"] = to_iso(category.get("updated_at"))
        return category

    async def get_by_id(self, category_id: int) -> Optional[Dict]:
        """Fetch single category by ID."""
        row = await self.db.fetchrow(f"SELECT {COLUMNS} FROM categories WHERE id = ?", category_id)
        return self._to_dict(row)

    async def get_main_by_value(self, value: str) -> Optional[Dict]:
        """Fetch the top-level category with the given value."""
        row = await self.db.fetchrow(
            f"SELECT {COLUMNS} FROM categories WHERE value = ? AND parent_id IS NULL", value
        )
        return self._to_dict(row)

    async def get_sub_by_value(self, value: str, parent_id: int) -> Optional[Dict]:
        """Fetch the sub-category with the given value under one parent."""
        row = await self.db.fetchrow(
            f"SELECT {COLUMNS} FROM categories WHERE value = ? AND parent_id = ?", value, parent_id
        )
        return self._to_dict(row)

    async def find_subs_by_value(self, value: str) -> List[Dict]:
        """Fetch every sub-category with the given value, across all parents."""
        rows = await self.db.fetch(
            f"SELECT {COLUMNS} FROM categories WHERE value = ? AND parent_id IS NOT NULL" + ORDER_BY,
            value
        )
        return [self._to_dict(row) for row in rows]

    async def find_value_at_level(
        self, value: str, parent_id: Optional[int], exclude_id: Optional[int] = None
    ) -> Optional[Dict]:
        """Find a category using `value` at the same hierarchy level, other than `exclude_id`."""
        if parent_id is None:
            query = f"SELECT {COLUMNS} FROM categories WHERE value = ? AND parent_id IS NULL"
            params: List[Any] = [value]
        else:
            query = f"SELECT {COLUMNS} FROM categories WHERE value = ? AND parent_id = ?"
            params = [value, parent_id]
        if exclude_id is not None:
            query += " AND id <> ?"
            params.append(exclude_id)
        row = await self.db.fetchrow(query, *params)
        return self._to_dict(row)

    async def get_all(self, active_only: bool = False) -> List[Dict]:
        """Fetch all categories in display order."""
        query = f"SELECT {COLUMNS} FROM categories"
        params: List[Any] = []
        if active_only:
            query += " WHERE is_active = ?"
            params.append(True)
        rows = await self.db.fetch(query + ORDER_BY, *params)
        return [self._to_dict(row) for row in rows]

    async def get_children(self, parent_id: int) -> List[Dict]:
        rows = await self.db.fetch(
            f"SELECT {COLUMNS} FROM categories WHERE parent_id = ?" + ORDER_BY, parent_id
        )
        return [self._to_dict(row) for row in rows]

    async def create(self, data: Dict[str, Any]) -> Dict:
        """Create a new category."""
        now = utcnow()
        try:
            category_id = await self.db.insert(
                """
                INSERT INTO categories (
                    parent_id, group_name, value, label, description, icon_name, color, path,
                    is_active, sort_order, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                data.get("parent_id"),
                data.get("group"),
                data["value"],
                data["label"],
                data.get("description"),
                data.get("icon_name"),
                data.get("color"),
                data["path"],
                data.get("is_active", True),
                data.get("sort_order", 0),
                now,
                now,
            )
        except UNIQUE_VIOLATIONS as e:
            logger.warning(f"Category value '{data['value']}' rejected by unique index: {e}")
            raise Conflict(f"Category '{data['value']}' already exists", error='CATEGORY_EXISTS')
        logger.info(f"Created category {category_id} ('{data['value']}')")
        return await self.get_by_id(category_id)

    async def update(
        self, category_id: int, data: Dict[str, Any]
    ) -> Optional[Dict]:
        """Update a category."""
        fields, params = self._assignments(data)
        if not fields:
            return await self.get_by_id(category_id)

        fields.append("updated_at = ?")
        params.append(utcnow())
        params.append(category_id)

        try:
            updated = await self.db.execute(
                f"UPDATE categories SET {', '.join(fields)} WHERE id = ?", *params
            )
        except UNIQUE_VIOLATIONS as e:
            logger.warning(f"Category {category_id} update rejected by unique index: {e}")
            raise Conflict(f"Category '{data.get('value')}' already exists", error='CATEGORY_EXISTS')
        if not updated:
            return None
        return await self.get_by_id(category_id)

    async def delete(self, category_id: int) -> bool:
        """Delete a category. Its sub-categories go with it; posts keep a NULL reference."""
        deleted = await self.db.execute("DELETE FROM categories WHERE id = ?", category_id)
        return deleted > 0
