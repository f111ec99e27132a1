# blog_posts/category_resolver.py
import logging
from dataclasses import dataclass, field
from typing import Optional, List

from blog_posts.repositories.category_repository import CategoryRepository

logger = logging.getLogger(__name__)


@dataclass
class CategoryResolution:
    """Outcome of turning category values into ids.

    `empty` means a named category does not exist, so no post can match and the
    store must not be queried at all.
    """
    main_id: Optional[int] = None
    sub_ids: List[int] = field(default_factory=list)
    empty: bool = False

    @classmethod
    def no_match(cls) -> "CategoryResolution":
        return cls(empty=True)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CategoryResolver:
    """Resolves main/sub category values from a post query into category ids."""

    def __init__(self, categories: CategoryRepository):
        self.categories = categories

    async def resolve(
        self, main_value: Optional[str] = None, sub_value: Optional[str] = None
    ) -> CategoryResolution:
        main_value = _clean(main_value)
        sub_value = _clean(sub_value)
        resolution = CategoryResolution()

        if main_value:
            main = await self.categories.get_main_by_value(main_value)
            if main is None:
                logger.info(f"Main category '{main_value}' not found; empty result")
                return CategoryResolution.no_match()
            resolution.main_id = main['id']

        if sub_value:
            if resolution.main_id is not None:
                sub = await self.categories.get_sub_by_value(sub_value, resolution.main_id)
                if sub is None:
                    logger.info(f"Sub category '{sub_value}' not found under '{main_value}'; empty result")
                    return CategoryResolution.no_match()
                resolution.sub_ids = [sub['id']]
            else:
                # Sub values are only unique per parent, so an unscoped lookup can match several
                subs = await self.categories.find_subs_by_value(sub_value)
                if not subs:
                    logger.info(f"Sub category '{sub_value}' not found; empty result")
                    return CategoryResolution.no_match()
                resolution.sub_ids = [sub['id'] for sub in subs]

        return resolution
