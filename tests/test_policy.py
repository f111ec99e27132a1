"""
blog_posts.policy 단위 테스트

테스트 대상:
- authorize_create(): 작성 권한 (admin 역할)
- authorize_edit_view(): 수정 화면 조회 (작성자만)
- authorize_update(): 수정 (작성자 또는 admin)
- authorize_delete(): 삭제 (admin만)
- 검사 순서: Unauthorized -> NotFound -> Forbidden
"""
import pytest

from blog_posts.auth import Actor
from blog_posts.errors import Unauthorized, Forbidden, NotFound
from blog_posts.policy import (
    authorize_create,
    authorize_edit_view,
    authorize_update,
    authorize_delete,
    authorize_admin,
)

from conftest import AUTHOR_EMAIL


@pytest.fixture
def post():
    return {'id': 1, 'title': 'Title', 'author_email': AUTHOR_EMAIL}


class TestAuthorizeCreate:
    """authorize_create() 테스트"""

    def test_admin_can_create(self, admin):
        assert authorize_create(admin) == admin

    def test_non_admin_forbidden(self, author):
        with pytest.raises(Forbidden):
            authorize_create(author)

    def test_missing_role_forbidden(self):
        with pytest.raises(Forbidden):
            authorize_create(Actor(subject='x@example.com'))

    def test_no_actor_unauthorized(self):
        with pytest.raises(Unauthorized):
            authorize_create(None)


class TestAuthorizeEditView:
    """authorize_edit_view() 테스트 (작성자 전용)"""

    def test_author_allowed(self, author, post):
        assert authorize_edit_view(author, post) is post

    def test_admin_who_is_not_author_forbidden(self, admin, post):
        """admin 역할만으로는 수정 화면 조회 불가"""
        with pytest.raises(Forbidden) as exc_info:
            authorize_edit_view(admin, post)
        assert exc_info.value.status_code == 403

    def test_other_user_forbidden(self, other_user, post):
        with pytest.raises(Forbidden):
            authorize_edit_view(other_user, post)

    def test_missing_post_not_found(self, author):
        with pytest.raises(NotFound):
            authorize_edit_view(author, None)

    def test_unauthorized_before_not_found(self):
        with pytest.raises(Unauthorized):
            authorize_edit_view(None, None)


class TestAuthorizeUpdate:
    """authorize_update() 테스트 (작성자 또는 admin)"""

    def test_author_allowed(self, author, post):
        assert authorize_update(author, post) is post

    def test_admin_allowed(self, admin, post):
        assert authorize_update(admin, post) is post

    def test_other_user_forbidden(self, other_user, post):
        with pytest.raises(Forbidden) as exc_info:
            authorize_update(other_user, post)
        assert 'author or admin' in exc_info.value.message

    def test_not_found_before_forbidden(self, other_user):
        with pytest.raises(NotFound):
            authorize_update(other_user, None)

    def test_no_actor_unauthorized(self, post):
        with pytest.raises(Unauthorized):
            authorize_update(None, post)


class TestAuthorizeDelete:
    """authorize_delete() 테스트 (admin 전용, 작성자 여부 무관)"""

    def test_admin_allowed(self, admin):
        assert authorize_delete(admin) == admin

    def test_author_without_admin_role_forbidden(self, author):
        with pytest.raises(Forbidden):
            authorize_delete(author)

    def test_no_actor_unauthorized(self):
        with pytest.raises(Unauthorized):
            authorize_delete(None)


class TestAuthorizeAdmin:

    def test_admin_allowed(self, admin):
        assert authorize_admin(admin) == admin

    def test_user_forbidden(self, author):
        with pytest.raises(Forbidden):
            authorize_admin(author)
