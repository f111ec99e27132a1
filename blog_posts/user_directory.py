# blog_posts/user_directory.py
import asyncio
import logging
from typing import Optional, List, Dict, Any
from urllib.parse import quote

import aiohttp

from blog_posts import config

logger = logging.getLogger(__name__)


class UserDirectoryClient:
    """Looks up author nicknames in the user service.

    A lookup never raises: any failure is logged and reported as None, since the
    nickname is display-only.
    """
    _session: Optional[aiohttp.ClientSession] = None

    def __init__(
        self,
        base_url: str = config.USER_SERVICE_URL,
        api_key: str = config.INTERNAL_API_KEY,
        timeout: float = config.USER_SERVICE_TIMEOUT,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        if not self.api_key:
            logger.warning("INTERNAL_API_KEY is not set; user-service lookups will be unauthenticated")

    @classmethod
    async def get_session(cls) -> aiohttp.ClientSession:
        """Get or create singleton aiohttp ClientSession."""
        if cls._session is None or cls._session.closed:
            cls._session = aiohttp.ClientSession()
            logger.info("Created new aiohttp ClientSession for user-service lookups")
        return cls._session

    @classmethod
    async def close(cls):
        """Close the singleton aiohttp ClientSession."""
        if cls._session and not cls._session.closed:
            await cls._session.close()
            logger.info("Closed aiohttp ClientSession for user-service lookups")

    async def get_user_nickname(self, email: str) -> Optional[str]:
        url = f"{self.base_url}/api/v1/users/email/{quote(email, safe='@')}"
        try:
            session = await self.get_session()
            async with session.get(url, headers={'X-API-KEY': self.api_key}, timeout=self.timeout) as resp:
                if resp.status != 200:
                    logger.warning(f"Nickname lookup for {email} returned HTTP {resp.status}")
                    return None
                body = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Failed to fetch nickname for {email}: {type(e).__name__}: {e}")
            return None

        nickname = body.get('data') if isinstance(body, dict) else None
        return nickname if isinstance(nickname, str) and nickname else None


async def enrich_authors(
    items: List[Dict[str, Any]],
    directory: UserDirectoryClient,
    concurrency: int = config.NICKNAME_LOOKUP_CONCURRENCY,
) -> List[Dict[str, Any]]:
    """Set `author` on every item from its `author_email`, one bounded lookup per item.

    A failed lookup only affects its own item, which gets the placeholder name.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def lookup(item: Dict[str, Any]) -> Optional[str]:
        async with semaphore:
            return await directory.get_user_nickname(item.get('author_email') or '')

    results = await asyncio.gather(*(lookup(item) for item in items), return_exceptions=True)
    for item, result in zip(items, results):
        if isinstance(result, BaseException):
            logger.warning(f"Nickname lookup for post {item.get('id')} failed: {result!r}")
            result = None
        item['author'] = result or config.UNKNOWN_AUTHOR
    return items
