# blog_posts/models/schemas.py
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from blog_posts.errors import MAX_ID

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
TOPIC_MAX_LENGTH = 200

# Request bodies accept both snake_case and camelCase keys; responses are camelCase
CAMEL_CASE = dict(alias_generator=to_camel, populate_by_name=True)


class PostCreate(BaseModel):
    model_config = ConfigDict(extra='forbid', **CAMEL_CASE)

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    content: Dict[str, Any] = Field(..., description="Structured document tree, stored as-is")
    description: str = Field('', max_length=DESCRIPTION_MAX_LENGTH)
    topic: str = Field('', max_length=TOPIC_MAX_LENGTH)
    tags: List[str] = Field(default_factory=list)
    main_category_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    sub_category_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    thumbnail: Optional[str] = None
    language: str = Field('ko', min_length=1, max_length=10)


class PostUpdate(BaseModel):
    """Partial update. Author and counters are not part of the payload."""
    model_config = ConfigDict(extra='forbid', **CAMEL_CASE)

    title: Optional[str] = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    content: Optional[Dict[str, Any]] = None
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    topic: Optional[str] = Field(None, max_length=TOPIC_MAX_LENGTH)
    tags: Optional[List[str]] = None
    main_category_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    sub_category_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    thumbnail: Optional[str] = None
    language: Optional[str] = Field(None, min_length=1, max_length=10)


class PostSummary(BaseModel):
    model_config = ConfigDict(**CAMEL_CASE)

    id: int
    title: str
    description: str = ''
    topic: str = ''
    tags: List[str] = Field(default_factory=list)
    author_email: str
    author: Optional[str] = None
    main_category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    view_count: int = 0
    like_count: int = 0
    thumbnail: Optional[str] = None
    language: str = 'ko'
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PostResponse(PostSummary):
    content: Dict[str, Any]


class PaginationMeta(BaseModel):
    model_config = ConfigDict(**CAMEL_CASE)

    total_items: int
    current_page: int
    total_pages: int
    items_per_page: int


class PaginatedPosts(BaseModel):
    model_config = ConfigDict(**CAMEL_CASE)

    data: List[PostSummary]
    meta: PaginationMeta


class CategoryGroup(str, Enum):
    FRONTEND = 'Frontend'
    BACKEND = 'Backend'
    DATABASE = 'Database'
    IT = 'IT'
    TEST = 'Test'
    ETC = 'Etc'


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra='forbid', **CAMEL_CASE)

    parent_id: Optional[int] = Field(None, ge=1, le=MAX_ID, description="Parent main category; omit for a main category")
    group: Optional[CategoryGroup] = None
    value: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$")
    label: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon_name: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    path: Optional[str] = Field(None, max_length=200)
    is_active: bool = True
    sort_order: int = Field(0, ge=0, le=MAX_ID)


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid', **CAMEL_CASE)

    parent_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    group: Optional[CategoryGroup] = None
    value: Optional[str] = Field(None, min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$")
    label: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon_name: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    path: Optional[str] = Field(None, max_length=200)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = Field(None, ge=0, le=MAX_ID)


class CategoryResponse(BaseModel):
    model_config = ConfigDict(**CAMEL_CASE)

    id: int
    parent_id: Optional[int] = None
    group: Optional[str] = None
    value: str
    label: str
    description: Optional[str] = None
    icon_name: Optional[str] = None
    color: Optional[str] = None
    path: str
    is_active: bool = True
    sort_order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    sub_categories: List["CategoryResponse"] = Field(default_factory=list)
