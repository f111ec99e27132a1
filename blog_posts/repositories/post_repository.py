# blog_posts/repositories/post_repository.py
import json
import logging
from typing import Optional, List, Dict, Any, Tuple

from blog_posts.database import utcnow, to_iso
from blog_posts.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = """
    id, title, description, topic, tags, author_email, main_category_id, sub_category_id,
    view_count, like_count, thumbnail, language, created_at, updated_at
"""
FULL_COLUMNS = "content, " + SUMMARY_COLUMNS


def _escape_like(keyword: str) -> str:
    return keyword.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def build_where(filters: Dict[str, Any]) -> Tuple[str, List[Any]]:
    """Translate a post filter dict into a WHERE clause.

    A list value for a category id becomes an IN (...) clause.
    """
    clauses = []
    params: List[Any] = []
    for column in ("main_category_id", "sub_category_id", "author_email"):
        if column not in filters or filters[column] is None:
            continue
        value = filters[column]
        if isinstance(value, (list, tuple, set)):
            values = list(value)
            if not values:
                raise ValueError(f"Empty in-set filter for {column}")
            clauses.append(f"{column} IN ({', '.join('?' for _ in values)})")
            params.extend(values)
        else:
            clauses.append(f"{column} = ?")
            params.append(value)
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


class PostRepository(BaseRepository[Dict]):
    """Repository for Post entity operations."""

    columns = {
        "title": "title",
        "content": "content",
        "description": "description",
        "topic": "topic",
        "tags": "tags",
        "main_category_id": "main_category_id",
        "sub_category_id": "sub_category_id",
        "thumbnail": "thumbnail",
        "language": "language",
    }

    @staticmethod
    def _to_dict(row: Optional[Dict]) -> Optional[Dict]:
        if row is None:
            return None
        post = dict(row)
        if "content" in post:
            post["content"] = json.loads(post["content"]) if post["content"] else {}
        post["tags"] = json.loads(post["tags"]) if post.get("tags") else []
        post["created_at"] = to_iso(post.get("created_at"))
        post["updated_at"] = to_iso(post.get("updated_at"))
        return post

    @staticmethod
    def _encode(data: Dict[str, Any]) -> Dict[str, Any]:
        encoded = dict(data)
        if "content" in encoded and encoded["content"] is not None:
            encoded["content"] = json.dumps(encoded["content"], ensure_ascii=False)
        if "tags" in encoded and encoded["tags"] is not None:
            encoded["tags"] = json.dumps(list(encoded["tags"]), ensure_ascii=False)
        return encoded

    async def get_by_id(self, post_id: int) -> Optional[Dict]:
        """Fetch single post by ID, content included."""
        row = await self.db.fetchrow(f"SELECT {FULL_COLUMNS} FROM posts WHERE id = ?", post_id)
        return self._to_dict(row)

    async def find(
        self, filters: Optional[Dict[str, Any]] = None, skip: int = 0, limit: int = 10,
        include_content: bool = False
    ) -> List[Dict]:
        """Fetch a page of posts, newest first."""
        where, params = build_where(filters or {})
        columns = FULL_COLUMNS if include_content else SUMMARY_COLUMNS
        query = (
            f"SELECT {columns} FROM posts{where} "
            "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?"
        )
        rows = await self.db.fetch(query, *params, limit, skip)
        return [self._to_dict(row) for row in rows]

    async def find_by_author(self, author_email: str) -> List[Dict]:
        rows = await self.db.fetch(
            f"SELECT {SUMMARY_COLUMNS} FROM posts WHERE author_email = ? ORDER BY created_at DESC, id DESC",
            author_email
        )
        return [self._to_dict(row) for row in rows]

    async def search(self, keyword: str) -> List[Dict]:
        """Case-insensitive substring match on title or description."""
        pattern = f"%{_escape_like(keyword.lower())}%"
        rows = await self.db.fetch(
            f"SELECT {SUMMARY_COLUMNS} FROM posts "
            "WHERE LOWER(title) LIKE ? ESCAPE '\\' OR LOWER(description) LIKE ? ESCAPE '\\' "
            "ORDER BY created_at DESC, id DESC",
            pattern, pattern
        )
        return [self._to_dict(row) for row in rows]

    async def create(self, data: Dict[str, Any]) -> Dict:
        """Create a new post and return it."""
        encoded = self._encode(data)
        now = utcnow()
        post_id = await self.db.insert(
            """
            INSERT INTO posts (
                title, content, description, topic, tags, author_email,
                main_category_id, sub_category_id, thumbnail, language, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            encoded["title"],
            encoded["content"],
            encoded.get("description") or "",
            encoded.get("topic") or "",
            encoded.get("tags") or "[]",
            encoded["author_email"],
            encoded.get("main_category_id"),
            encoded.get("sub_category_id"),
            encoded.get("thumbnail"),
            encoded.get("language") or "ko",
            now,
            now,
        )
        logger.info(f"Created post {post_id} by {data['author_email']}")
        return await self.get_by_id(post_id)

    async def update(
        self, post_id: int, data: Dict[str, Any]
    ) -> Optional[Dict]:
        """Update a post (no permission check). author_email and counters are not writable here."""
        fields, params = self._assignments(self._encode(data))
        if not fields:
            return await self.get_by_id(post_id)

        fields.append("updated_at = ?")
        params.append(utcnow())
        params.append(post_id)

        updated = await self.db.execute(f"UPDATE posts SET {', '.join(fields)} WHERE id = ?", *params)
        if not updated:
            return None
        return await self.get_by_id(post_id)

    async def increment_view_count(self, post_id: int) -> bool:
        """Atomically add one view. Returns False when the post does not exist."""
        updated = await self.db.execute(
            "UPDATE posts SET view_count = view_count + 1 WHERE id = ?", post_id
        )
        return updated > 0

    async def delete(self, post_id: int) -> bool:
        """Delete a post."""
        deleted = await self.db.execute("DELETE FROM posts WHERE id = ?", post_id)
        return deleted > 0

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count posts matching the filter."""
        where, params = build_where(filters or {})
        count = await self.db.fetchval(f"SELECT COUNT(*) FROM posts{where}", *params)
        return count or 0
