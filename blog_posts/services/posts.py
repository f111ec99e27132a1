# blog_posts/services/posts.py
import asyncio
import logging
from typing import Optional, List, Dict, Any

from blog_posts.auth import Actor
from blog_posts.category_resolver import CategoryResolver
from blog_posts.errors import NotFound, InvalidArgument, coerce_id, parse_id
from blog_posts.models.schemas import (
    PostCreate,
    PostUpdate,
    TITLE_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    TOPIC_MAX_LENGTH,
)
from blog_posts.pagination import PostQueryBuilder, PaginatedResult, build_page, empty_page
from blog_posts.policy import (
    authorize_create,
    authorize_edit_view,
    authorize_update,
    authorize_delete,
    ensure_authenticated,
)
from blog_posts.repositories import PostRepository, CategoryRepository
from blog_posts.sanitize import sanitize_text, sanitize_tags
from blog_posts.user_directory import UserDirectoryClient, enrich_authors

logger = logging.getLogger(__name__)

# Fields the update payload may not clear
NON_NULLABLE_FIELDS = ('title', 'content', 'description', 'topic', 'tags', 'language')

# Sanitising escapes characters such as `&`, so bounds are re-checked on the stored value
TEXT_MAX_LENGTHS = {
    'title': TITLE_MAX_LENGTH,
    'description': DESCRIPTION_MAX_LENGTH,
    'topic': TOPIC_MAX_LENGTH,
}


class PostsService:
    """Post use cases: authorization, validation, storage and author enrichment."""

    def __init__(
        self,
        posts: PostRepository,
        categories: CategoryRepository,
        directory: UserDirectoryClient,
    ):
        self.posts = posts
        self.categories = categories
        self.directory = directory
        self.query_builder = PostQueryBuilder(CategoryResolver(categories))

    async def _enrich(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return await enrich_authors(items, self.directory)

    async def _enrich_one(self, post: Dict[str, Any]) -> Dict[str, Any]:
        return (await self._enrich([post]))[0]

    async def _load_post(self, raw_id) -> Optional[Dict[str, Any]]:
        post_id = coerce_id(raw_id)
        if post_id is None:
            return None
        return await self.posts.get_by_id(post_id)

    async def _check_categories(self, main_id: Optional[int], sub_id: Optional[int]) -> None:
        main = None
        if main_id is not None:
            main = await self.categories.get_by_id(main_id)
            if main is None:
                raise NotFound(f"Main category with ID {main_id} not found")
            if main['parent_id'] is not None:
                raise InvalidArgument(f"Category {main_id} is not a main category")

        if sub_id is not None:
            sub = await self.categories.get_by_id(sub_id)
            if sub is None:
                raise NotFound(f"Sub category with ID {sub_id} not found")
            if sub['parent_id'] is None:
                raise InvalidArgument(f"Category {sub_id} is not a sub category")
            if main is not None and sub['parent_id'] != main['id']:
                raise InvalidArgument(
                    f"Sub category {sub_id} does not belong to main category {main_id}"
                )

    @staticmethod
    def _sanitize(data: Dict[str, Any]) -> Dict[str, Any]:
        for key, max_length in TEXT_MAX_LENGTHS.items():
            if key not in data:
                continue
            data[key] = sanitize_text(data[key])
            if data[key] is not None and len(data[key]) > max_length:
                raise InvalidArgument(
                    f"Field '{key}' must be at most {max_length} characters once HTML-escaped"
                )
        if 'tags' in data:
            data['tags'] = sanitize_tags(data['tags'])
        return data

    async def create(self, payload: PostCreate, actor: Optional[Actor]) -> Dict[str, Any]:
        actor = authorize_create(actor)
        if '@' not in (actor.subject or ''):
            raise InvalidArgument('Invalid author email')

        data = payload.model_dump()
        if not data.get('title') or not data.get('content'):
            raise InvalidArgument('Title and content are required')

        await self._check_categories(data.get('main_category_id'), data.get('sub_category_id'))

        data = self._sanitize(data)
        if not data['title']:
            raise InvalidArgument('Title and content are required')
        data['author_email'] = actor.subject

        post = await self.posts.create(data)
        return await self._enrich_one(post)

    async def find_all(
        self,
        main_category: Optional[str] = None,
        sub_category: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedResult:
        query = await self.query_builder.build(main_category, sub_category, page, limit)
        if query.empty:
            return empty_page(query.page, query.limit)

        if query.past_store_range:
            total = await self.posts.count(query.filter)
            return build_page([], total, query.page, query.limit)

        results = await asyncio.gather(
            self.posts.find(query.filter, skip=query.skip, limit=query.store_limit),
            self.posts.count(query.filter),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        items, total = results
        items = await self._enrich(items)
        return build_page(items, total, query.page, query.limit)

    async def find_one(self, raw_id, viewed: bool = False) -> Dict[str, Any]:
        post_id = parse_id(raw_id)
        post = await self.posts.get_by_id(post_id)
        if post is None:
            raise NotFound(f"Post with ID {raw_id} not found")

        if not viewed and await self.posts.increment_view_count(post_id):
            post['view_count'] += 1
        return await self._enrich_one(post)

    async def increment_view_count(self, raw_id) -> None:
        post_id = parse_id(raw_id)
        if not await self.posts.increment_view_count(post_id):
            raise NotFound(f"Post with ID {raw_id} not found")

    async def find_for_edit(self, raw_id, actor: Optional[Actor]) -> Dict[str, Any]:
        actor = ensure_authenticated(actor)
        post = authorize_edit_view(actor, await self._load_post(raw_id))
        return await self._enrich_one(post)

    async def update(self, raw_id, payload: PostUpdate, actor: Optional[Actor]) -> Dict[str, Any]:
        actor = ensure_authenticated(actor)
        post = authorize_update(actor, await self._load_post(raw_id))

        changes = payload.model_dump(exclude_unset=True)
        for key in NON_NULLABLE_FIELDS:
            if key in changes and changes[key] is None:
                raise InvalidArgument(f"Field '{key}' cannot be null")

        if 'main_category_id' in changes or 'sub_category_id' in changes:
            await self._check_categories(
                changes.get('main_category_id', post.get('main_category_id')),
                changes.get('sub_category_id', post.get('sub_category_id')),
            )

        changes = self._sanitize(changes)
        if 'title' in changes and not changes['title']:
            raise InvalidArgument('Title cannot be empty')

        updated = await self.posts.update(post['id'], changes)
        if updated is None:
            raise NotFound(f"Post with ID {raw_id} not found")
        logger.info(f"Post {post['id']} updated by {actor.subject}")
        return await self._enrich_one(updated)

    async def remove(self, raw_id, actor: Optional[Actor]) -> None:
        actor = authorize_delete(actor)
        post_id = parse_id(raw_id)
        if not await self.posts.delete(post_id):
            raise NotFound(f"Post with ID {raw_id} not found")
        logger.info(f"Post {post_id} deleted by {actor.subject}")

    async def find_by_author(self, email: str) -> List[Dict[str, Any]]:
        items = await self.posts.find_by_author(email)
        return await self._enrich(items)

    async def search(self, keyword: Optional[str]) -> List[Dict[str, Any]]:
        keyword = (keyword or '').strip()
        if not keyword:
            return []
        items = await self.posts.search(keyword)
        return await self._enrich(items)

    async def count(self) -> int:
        return await self.posts.count()
