"""
CategoryResolver / PostQueryBuilder 단위 테스트

테스트 대상:
- 메인 카테고리 값 -> id
- 메인 범위 내 서브 카테고리 조회
- 메인 없이 서브 카테고리 값으로 다중 매칭
- 존재하지 않는 카테고리 -> empty
- 페이지 검증 및 skip 계산
"""
import pytest
from unittest.mock import AsyncMock

from blog_posts.category_resolver import CategoryResolver, CategoryResolution
from blog_posts.errors import InvalidArgument
from blog_posts.pagination import PostQueryBuilder, build_filter


async def seed_tree(categories):
    """Frontend(react, vue) / Backend(react) 트리 생성"""
    frontend = await categories.create({'value': 'frontend', 'label': 'Frontend', 'path': '/f', 'group': 'Frontend'})
    backend = await categories.create({'value': 'backend', 'label': 'Backend', 'path': '/b', 'group': 'Backend'})
    react = await categories.create({'value': 'react', 'label': 'React', 'path': '/f/r', 'parent_id': frontend['id']})
    vue = await categories.create({'value': 'vue', 'label': 'Vue', 'path': '/f/v', 'parent_id': frontend['id']})
    backend_react = await categories.create({'value': 'react', 'label': 'React SSR', 'path': '/b/r', 'parent_id': backend['id']})
    return {
        'frontend': frontend, 'backend': backend,
        'react': react, 'vue': vue, 'backend_react': backend_react,
    }


class TestCategoryResolver:
    """CategoryResolver.resolve() 테스트"""

    @pytest.mark.asyncio
    async def test_no_values_means_no_filter(self, category_repository):
        resolution = await CategoryResolver(category_repository).resolve()
        assert resolution == CategoryResolution()

    @pytest.mark.asyncio
    async def test_main_only(self, category_repository):
        tree = await seed_tree(category_repository)
        resolution = await CategoryResolver(category_repository).resolve('frontend')

        assert resolution.main_id == tree['frontend']['id']
        assert resolution.sub_ids == []
        assert resolution.empty is False

    @pytest.mark.asyncio
    async def test_sub_scoped_to_main(self, category_repository):
        tree = await seed_tree(category_repository)
        resolution = await CategoryResolver(category_repository).resolve('backend', 'react')

        assert resolution.main_id == tree['backend']['id']
        assert resolution.sub_ids == [tree['backend_react']['id']]

    @pytest.mark.asyncio
    async def test_sub_without_main_matches_every_parent(self, category_repository):
        """메인 없이 서브 값만 주면 모든 부모에서 매칭"""
        tree = await seed_tree(category_repository)
        resolution = await CategoryResolver(category_repository).resolve(None, 'react')

        assert resolution.main_id is None
        assert sorted(resolution.sub_ids) == sorted([tree['react']['id'], tree['backend_react']['id']])

    @pytest.mark.asyncio
    async def test_unknown_main_is_empty(self, category_repository):
        await seed_tree(category_repository)
        resolution = await CategoryResolver(category_repository).resolve('nope')
        assert resolution.empty is True

    @pytest.mark.asyncio
    async def test_sub_under_wrong_main_is_empty(self, category_repository):
        await seed_tree(category_repository)
        resolution = await CategoryResolver(category_repository).resolve('backend', 'vue')
        assert resolution.empty is True

    @pytest.mark.asyncio
    async def test_unknown_sub_is_empty(self, category_repository):
        await seed_tree(category_repository)
        resolution = await CategoryResolver(category_repository).resolve(None, 'svelte')
        assert resolution.empty is True

    @pytest.mark.asyncio
    async def test_blank_values_are_ignored(self, category_repository):
        resolution = await CategoryResolver(category_repository).resolve('  ', '')
        assert resolution == CategoryResolution()


class TestPostQueryBuilder:
    """PostQueryBuilder.build() 테스트"""

    @pytest.mark.asyncio
    async def test_skip_is_derived_from_page(self):
        resolver = AsyncMock()
        resolver.resolve.return_value = CategoryResolution(main_id=3)

        query = await PostQueryBuilder(resolver).build('frontend', None, page=3, limit=10)

        assert query.skip == 20
        assert query.limit == 10
        assert query.filter == {'main_category_id': 3}
        assert query.empty is False

    @pytest.mark.asyncio
    async def test_multiple_sub_ids_become_in_set(self):
        resolver = AsyncMock()
        resolver.resolve.return_value = CategoryResolution(sub_ids=[4, 7])

        query = await PostQueryBuilder(resolver).build(None, 'react')

        assert query.filter == {'sub_category_id': [4, 7]}

    @pytest.mark.asyncio
    async def test_empty_resolution_propagates(self):
        resolver = AsyncMock()
        resolver.resolve.return_value = CategoryResolution.no_match()

        query = await PostQueryBuilder(resolver).build('nope')

        assert query.empty is True
        assert query.filter == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize('page,limit', [(0, 10), (1, 0), (-1, 5)])
    async def test_invalid_window_rejected_before_resolving(self, page, limit):
        resolver = AsyncMock()

        with pytest.raises(InvalidArgument):
            await PostQueryBuilder(resolver).build('frontend', page=page, limit=limit)
        resolver.resolve.assert_not_called()


class TestBuildFilter:

    def test_single_sub_is_scalar(self):
        assert build_filter(CategoryResolution(main_id=1, sub_ids=[2])) == {
            'main_category_id': 1,
            'sub_category_id': 2,
        }

    def test_no_resolution_no_filter(self):
        assert build_filter(CategoryResolution()) == {}

    @pytest.mark.asyncio
    async def test_no_category_window(self, category_repository):
        query = await PostQueryBuilder(CategoryResolver(category_repository)).build(None, None, page=2, limit=5)

        assert query.skip == 5
        assert query.limit == 5
        assert query.filter == {}
