# blog_posts/pagination.py
import math
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, TypeVar, Generic

from blog_posts.category_resolver import CategoryResolver, CategoryResolution
from blog_posts.errors import InvalidArgument

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

# LIMIT and OFFSET are bound as signed 64-bit integers by both backends
STORE_INT_MAX = 2 ** 63 - 1


@dataclass
class PaginationMeta:
    total_items: int
    current_page: int
    total_pages: int
    items_per_page: int


@dataclass
class PaginatedResult(Generic[T]):
    data: List[T]
    meta: PaginationMeta


@dataclass
class PostQuery:
    """Filter and window for one page of posts."""
    filter: Dict[str, Any] = field(default_factory=dict)
    skip: int = 0
    limit: int = DEFAULT_LIMIT
    page: int = DEFAULT_PAGE
    empty: bool = False

    @property
    def store_limit(self) -> int:
        return min(self.limit, STORE_INT_MAX)

    @property
    def past_store_range(self) -> bool:
        """The window starts beyond any row the store can address."""
        return self.skip > STORE_INT_MAX


def validate_page(page: int, limit: int) -> None:
    if page < 1:
        raise InvalidArgument('Page number must be greater than 0')
    if limit < 1:
        raise InvalidArgument('Limit must be greater than 0')


def build_filter(resolution: CategoryResolution) -> Dict[str, Any]:
    post_filter: Dict[str, Any] = {}
    if resolution.main_id is not None:
        post_filter['main_category_id'] = resolution.main_id
    if len(resolution.sub_ids) == 1:
        post_filter['sub_category_id'] = resolution.sub_ids[0]
    elif resolution.sub_ids:
        post_filter['sub_category_id'] = list(resolution.sub_ids)
    return post_filter


def build_page(items: List[T], total_items: int, page: int, limit: int) -> PaginatedResult[T]:
    total_pages = math.ceil(total_items / limit) if total_items else 0
    return PaginatedResult(
        data=list(items),
        meta=PaginationMeta(
            total_items=total_items,
            current_page=page,
            total_pages=total_pages,
            items_per_page=limit,
        ),
    )


def empty_page(page: int, limit: int) -> PaginatedResult:
    return build_page([], 0, page, limit)


class PostQueryBuilder:
    def __init__(self, resolver: CategoryResolver):
        self.resolver = resolver

    async def build(
        self,
        main_value: Optional[str] = None,
        sub_value: Optional[str] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> PostQuery:
        validate_page(page, limit)
        resolution = await self.resolver.resolve(main_value, sub_value)
        if resolution.empty:
            return PostQuery(skip=(page - 1) * limit, limit=limit, page=page, empty=True)
        return PostQuery(
            filter=build_filter(resolution),
            skip=(page - 1) * limit,
            limit=limit,
            page=page,
        )
