# blog_posts/services/categories.py
import logging
from typing import Optional, List, Dict, Any

from blog_posts.auth import Actor
from blog_posts.errors import NotFound, InvalidArgument, Conflict, coerce_id, parse_id
from blog_posts.models.schemas import CategoryCreate, CategoryUpdate, CategoryGroup
from blog_posts.policy import authorize_admin
from blog_posts.repositories import CategoryRepository

logger = logging.getLogger(__name__)

DEFAULT_GROUP = CategoryGroup.ETC.value
NON_NULLABLE_FIELDS = ('value', 'label', 'path', 'is_active', 'sort_order')


def default_path(value: str, parent: Optional[Dict[str, Any]] = None) -> str:
    if parent is None:
        return f"/post/view/{value}"
    return f"/post/view/{parent['value']}/{value}"


class CategoryService:
    """Two-level category tree. Reads are public, mutations are admin-only."""

    def __init__(self, categories: CategoryRepository):
        self.categories = categories

    async def _get_parent(self, parent_id: int) -> Dict[str, Any]:
        parent = await self.categories.get_by_id(parent_id)
        if parent is None:
            raise NotFound(f"Parent category with ID {parent_id} not found")
        if parent['parent_id'] is not None:
            raise InvalidArgument('A sub category cannot have its own sub categories')
        return parent

    async def _ensure_unique(
        self, value: str, parent_id: Optional[int], exclude_id: Optional[int] = None
    ) -> None:
        existing = await self.categories.find_value_at_level(value, parent_id, exclude_id)
        if existing is not None:
            raise Conflict(f"Category '{value}' already exists", error='CATEGORY_EXISTS')

    async def _load(self, raw_id) -> Dict[str, Any]:
        category_id = coerce_id(raw_id)
        category = await self.categories.get_by_id(category_id) if category_id else None
        if category is None:
            raise NotFound(f"Category with ID {raw_id} not found")
        return category

    async def create(self, payload: CategoryCreate, actor: Optional[Actor]) -> Dict[str, Any]:
        actor = authorize_admin(actor)
        data = payload.model_dump(mode='json')

        parent = None
        if data.get('parent_id') is not None:
            parent = await self._get_parent(data['parent_id'])
            # Groups only apply to main categories
            data['group'] = None

        if not data.get('path'):
            data['path'] = default_path(data['value'], parent)

        await self._ensure_unique(data['value'], data.get('parent_id'))
        category = await self.categories.create(data)
        logger.info(f"Category {category['id']} ('{category['value']}') created by {actor.subject}")
        return category

    async def find_all(self, active_only: bool = False) -> List[Dict[str, Any]]:
        return await self.categories.get_all(active_only)

    async def find_grouped(self, active_only: bool = False) -> Dict[str, List[Dict[str, Any]]]:
        """Main categories keyed by group, each with its sub categories nested."""
        categories = await self.categories.get_all(active_only)
        children: Dict[int, List[Dict[str, Any]]] = {}
        for category in categories:
            if category['parent_id'] is not None:
                children.setdefault(category['parent_id'], []).append(category)

        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for category in categories:
            if category['parent_id'] is not None:
                continue
            category['sub_categories'] = children.get(category['id'], [])
            grouped.setdefault(category['group'] or DEFAULT_GROUP, []).append(category)
        return grouped

    async def find_one(self, raw_id) -> Dict[str, Any]:
        category_id = parse_id(raw_id, kind='Category')
        category = await self.categories.get_by_id(category_id)
        if category is None:
            raise NotFound(f"Category with ID {raw_id} not found")
        category['sub_categories'] = await self.categories.get_children(category_id) \
            if category['parent_id'] is None else []
        return category

    async def find_by_value(self, value: str) -> Dict[str, Any]:
        category = await self.categories.get_main_by_value(value)
        if category is None:
            raise NotFound(f"Category '{value}' not found")
        category['sub_categories'] = await self.categories.get_children(category['id'])
        return category

    async def update(self, raw_id, payload: CategoryUpdate, actor: Optional[Actor]) -> Dict[str, Any]:
        actor = authorize_admin(actor)
        category = await self._load(raw_id)

        changes = payload.model_dump(mode='json', exclude_unset=True)
        for key in NON_NULLABLE_FIELDS:
            if key in changes and changes[key] is None:
                raise InvalidArgument(f"Field '{key}' cannot be null")

        parent_id = changes.get('parent_id', category['parent_id'])
        if 'parent_id' in changes and parent_id != category['parent_id']:
            if parent_id is not None:
                if parent_id == category['id']:
                    raise InvalidArgument('A category cannot be its own parent')
                await self._get_parent(parent_id)
                if await self.categories.get_children(category['id']):
                    raise InvalidArgument('A category with sub categories cannot become a sub category')
                changes['group'] = None

        value = changes.get('value', category['value'])
        if value != category['value'] or parent_id != category['parent_id']:
            await self._ensure_unique(value, parent_id, exclude_id=category['id'])

        updated = await self.categories.update(category['id'], changes)
        if updated is None:
            raise NotFound(f"Category with ID {raw_id} not found")
        logger.info(f"Category {category['id']} updated by {actor.subject}")
        return updated

    async def remove(self, raw_id, actor: Optional[Actor]) -> None:
        actor = authorize_admin(actor)
        category = await self._load(raw_id)
        if not await self.categories.delete(category['id']):
            raise NotFound(f"Category with ID {raw_id} not found")
        logger.info(f"Category {category['id']} ('{category['value']}') deleted by {actor.subject}")

    async def _set_active(self, raw_id, actor: Optional[Actor], is_active: bool) -> Dict[str, Any]:
        authorize_admin(actor)
        category = await self._load(raw_id)
        updated = await self.categories.update(category['id'], {'is_active': is_active})
        if updated is None:
            raise NotFound(f"Category with ID {raw_id} not found")
        return updated

    async def activate(self, raw_id, actor: Optional[Actor]) -> Dict[str, Any]:
        return await self._set_active(raw_id, actor, True)

    async def deactivate(self, raw_id, actor: Optional[Actor]) -> Dict[str, Any]:
        return await self._set_active(raw_id, actor, False)
