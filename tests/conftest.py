"""
post-service 단위 테스트를 위한 pytest fixtures
"""
import base64
import os
import sys
import tempfile
import time

import jwt
import pytest
import pytest_asyncio

# 프로젝트 루트를 path에 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# blog_posts.config 는 import 시점에 환경변수를 읽으므로 먼저 설정
TEST_SECRET = b'test-secret-key-for-post-service-0123456789'
os.environ['USE_POSTGRES'] = 'false'
os.environ['ALLOWED_ORIGINS'] = 'http://localhost:3000'
os.environ['BLOG_DATABASE_PATH'] = os.path.join(tempfile.mkdtemp(), 'posts.db')
os.environ['JWT_SECRET'] = base64.b64encode(TEST_SECRET).decode()
os.environ['JWT_ALGORITHM'] = 'HS256'
os.environ['INTERNAL_API_KEY'] = 'test-internal-key'
os.environ['USER_SERVICE_URL'] = 'http://test-user-service:8001'

from blog_posts.auth import Actor
from blog_posts.database import BlogDatabase
from blog_posts.repositories import PostRepository, CategoryRepository

ADMIN_EMAIL = 'admin@example.com'
AUTHOR_EMAIL = 'author@example.com'
OTHER_EMAIL = 'other@example.com'


class FakeDirectory:
    """닉네임 조회용 user-service 대체 객체"""

    def __init__(self, nicknames=None, failing=()):
        self.nicknames = nicknames or {}
        self.failing = set(failing)
        self.calls = []

    async def get_user_nickname(self, email):
        self.calls.append(email)
        if email in self.failing:
            return None
        return self.nicknames.get(email)


def make_token(subject=ADMIN_EMAIL, role='admin', expires_in=3600, secret=TEST_SECRET, **extra):
    """테스트용 HS256 JWT 생성"""
    now = int(time.time())
    payload = {'sub': subject, 'iat': now, 'exp': now + expires_in, **extra}
    if role is not None:
        payload['auth'] = role
    return jwt.encode(payload, secret, algorithm='HS256')


@pytest.fixture
def temp_db_path():
    """테스트용 임시 SQLite 데이터베이스 경로"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.join(tmpdir, 'test_posts.db')


@pytest_asyncio.fixture
async def database(temp_db_path):
    """스키마가 초기화된 임시 SQLite 데이터베이스"""
    db = BlogDatabase(use_postgres=False, database_path=temp_db_path)
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def post_repository(database):
    return PostRepository(database)


@pytest.fixture
def category_repository(database):
    return CategoryRepository(database)


@pytest.fixture
def fake_directory():
    return FakeDirectory(nicknames={
        ADMIN_EMAIL: 'admin-nick',
        AUTHOR_EMAIL: 'author-nick',
        OTHER_EMAIL: 'other-nick',
    })


@pytest.fixture
def admin():
    return Actor(subject=ADMIN_EMAIL, role='admin')


@pytest.fixture
def author():
    return Actor(subject=AUTHOR_EMAIL, role='user')


@pytest.fixture
def other_user():
    return Actor(subject=OTHER_EMAIL, role='user')


@pytest.fixture
def sample_content():
    """테스트용 문서 트리"""
    return {
        'type': 'doc',
        'content': [
            {'type': 'paragraph', 'content': [{'type': 'text', 'text': 'Hello'}]},
        ],
    }


@pytest.fixture
def xss_payloads():
    """XSS 공격 테스트용 페이로드"""
    return [
        '<script>alert("XSS")</script>',
        '<img src=x onerror=alert("XSS")>',
        '<svg onload=alert("XSS")>',
        '<a href="javascript:alert(\'XSS\')">Click me</a>',
        '"><script>alert("XSS")</script>',
    ]
