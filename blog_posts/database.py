# blog_posts/database.py
import os
import re
import logging
from typing import Optional, Dict, List, Any, Sequence
from datetime import datetime, timezone

import aiosqlite
import asyncpg

from blog_posts.config import USE_POSTGRES, DB_CONFIG, DATABASE_PATH

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r'\?')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Any) -> Optional[str]:
    """Render a timestamp column the same way for both backends."""
    if value is None:
        return None
    return value.isoformat() if hasattr(value, 'isoformat') else str(value)


def to_postgres_query(query: str) -> str:
    """Rewrite qmark placeholders (`?`) into asyncpg's numbered form (`$1`)."""
    counter = iter(range(1, 10_000))
    return _PLACEHOLDER.sub(lambda _: f"${next(counter)}", query)


def _sqlite_params(params: Sequence[Any]) -> tuple:
    return tuple(p.isoformat() if isinstance(p, datetime) else p for p in params)


class BlogDatabase:
    """Connection handling and schema bootstrap for the posts/categories store.

    Queries are written once with qmark placeholders; the PostgreSQL path
    rewrites them before handing them to asyncpg.
    """

    def __init__(
        self,
        use_postgres: Optional[bool] = None,
        database_path: Optional[str] = None,
        db_config: Optional[Dict[str, Any]] = None,
    ):
        self.use_postgres = USE_POSTGRES if use_postgres is None else use_postgres
        self.database_path = database_path or DATABASE_PATH
        self.db_config = db_config or DB_CONFIG
        self.pool: Optional[asyncpg.Pool] = None
        self._initialized = False

    async def initialize(self):
        """Initialize database connection pool and schema."""
        if self._initialized:
            return

        if self.use_postgres:
            try:
                self.pool = await asyncpg.create_pool(
                    min_size=5,
                    max_size=20,
                    **self.db_config
                )
                logger.info(f"PostgreSQL connection pool created: {self.db_config['host']}:{self.db_config['port']}")
                await self._initialize_postgres_schema()
            except Exception as e:
                logger.error(f"PostgreSQL pool creation failed: {e}", exc_info=True)
                raise
        else:
            await self._initialize_sqlite_schema()

        self._initialized = True

    async def _initialize_postgres_schema(self):
        """Initialize PostgreSQL database schema."""
        async with self.pool.acquire() as conn:
            await conn.execute('''
                CREATE TABLE IF NOT EXISTS categories (
                    id SERIAL PRIMARY KEY,
                    parent_id INTEGER REFERENCES categories(id) ON DELETE CASCADE,
                    group_name VARCHAR(50),
                    value VARCHAR(100) NOT NULL,
                    label VARCHAR(100) NOT NULL,
                    description TEXT,
                    icon_name VARCHAR(100),
                    color VARCHAR(20),
                    path VARCHAR(200) NOT NULL,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            await conn.execute('''
                CREATE UNIQUE INDEX IF NOT EXISTS idx_categories_level_value
                ON categories ((COALESCE(parent_id, 0)), value)
            ''')

            await conn.execute('''
                CREATE TABLE IF NOT EXISTS posts (
                    id SERIAL PRIMARY KEY,
                    title VARCHAR(100) NOT NULL,
                    content TEXT NOT NULL,
                    description VARCHAR(500) NOT NULL DEFAULT '',
                    topic VARCHAR(200) NOT NULL DEFAULT '',
                    tags TEXT NOT NULL DEFAULT '[]',
                    author_email VARCHAR(254) NOT NULL,
                    main_category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                    sub_category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                    view_count INTEGER NOT NULL DEFAULT 0,
                    like_count INTEGER NOT NULL DEFAULT 0,
                    thumbnail TEXT,
                    language VARCHAR(10) NOT NULL DEFAULT 'ko',
                    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            await conn.execute('CREATE INDEX IF NOT EXISTS idx_posts_author_email ON posts(author_email)')
            await conn.execute('CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at DESC)')
            await conn.execute('CREATE INDEX IF NOT EXISTS idx_posts_main_category_id ON posts(main_category_id)')
            await conn.execute('CREATE INDEX IF NOT EXISTS idx_posts_sub_category_id ON posts(sub_category_id)')

        logger.info("PostgreSQL post database schema initialized")

    async def _initialize_sqlite_schema(self):
        """Initialize SQLite database schema."""
        directory = os.path.dirname(self.database_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        async with aiosqlite.connect(self.database_path) as conn:
            await conn.execute('''
                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    parent_id INTEGER REFERENCES categories(id) ON DELETE CASCADE,
                    group_name TEXT,
                    value TEXT NOT NULL,
                    label TEXT NOT NULL,
                    description TEXT,
                    icon_name TEXT,
                    color TEXT,
                    path TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')
            await conn.execute('''
                CREATE UNIQUE INDEX IF NOT EXISTS idx_categories_level_value
                ON categories (COALESCE(parent_id, 0), value)
            ''')

            await conn.execute('''
                CREATE TABLE IF NOT EXISTS posts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    topic TEXT NOT NULL DEFAULT '',
                    tags TEXT NOT NULL DEFAULT '[]',
                    author_email TEXT NOT NULL,
                    main_category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                    sub_category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
                    view_count INTEGER NOT NULL DEFAULT 0,
                    like_count INTEGER NOT NULL DEFAULT 0,
                    thumbnail TEXT,
                    language TEXT NOT NULL DEFAULT 'ko',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')
            await conn.execute('CREATE INDEX IF NOT EXISTS idx_posts_author_email ON posts(author_email)')
            await conn.execute('CREATE INDEX IF NOT EXISTS idx_posts_main_category_id ON posts(main_category_id)')
            await conn.execute('CREATE INDEX IF NOT EXISTS idx_posts_sub_category_id ON posts(sub_category_id)')
            await conn.commit()

        logger.info(f"SQLite post database schema initialized at {self.database_path}")

    async def fetch(self, query: str, *params: Any) -> List[Dict]:
        if self.use_postgres:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(to_postgres_query(query), *params)
                return [dict(row) for row in rows]
        async with aiosqlite.connect(self.database_path) as conn:
            conn.row_factory = aiosqlite.Row
            cursor = await conn.execute(query, _sqlite_params(params))
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def fetchrow(self, query: str, *params: Any) -> Optional[Dict]:
        if self.use_postgres:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(to_postgres_query(query), *params)
                return dict(row) if row else None
        async with aiosqlite.connect(self.database_path) as conn:
            conn.row_factory = aiosqlite.Row
            cursor = await conn.execute(query, _sqlite_params(params))
            row = await cursor.fetchone()
            return dict(row) if row else None

    async def fetchval(self, query: str, *params: Any) -> Any:
        if self.use_postgres:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(to_postgres_query(query), *params)
        async with aiosqlite.connect(self.database_path) as conn:
            cursor = await conn.execute(query, _sqlite_params(params))
            row = await cursor.fetchone()
            return row[0] if row else None

    async def insert(self, query: str, *params: Any) -> int:
        """Run an INSERT and return the new row id."""
        if self.use_postgres:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(to_postgres_query(query) + " RETURNING id", *params)
        async with aiosqlite.connect(self.database_path) as conn:
            await conn.execute("PRAGMA foreign_keys = ON")
            cursor = await conn.execute(query, _sqlite_params(params))
            await conn.commit()
            return cursor.lastrowid

    async def execute(self, query: str, *params: Any) -> int:
        """Run an UPDATE/DELETE and return the number of affected rows."""
        if self.use_postgres:
            async with self.pool.acquire() as conn:
                result = await conn.execute(to_postgres_query(query), *params)
                # Parse "UPDATE N" / "DELETE N" result
                return int(result.split()[-1]) if result else 0
        async with aiosqlite.connect(self.database_path) as conn:
            await conn.execute("PRAGMA foreign_keys = ON")
            cursor = await conn.execute(query, _sqlite_params(params))
            await conn.commit()
            return cursor.rowcount

    async def health_check(self) -> bool:
        try:
            await self.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool."""
        if self.use_postgres and self.pool:
            await self.pool.close()
            logger.info("PostgreSQL connection pool closed")
