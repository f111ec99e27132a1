# blog_posts/services/__init__.py
from blog_posts.services.posts import PostsService
from blog_posts.services.categories import CategoryService

__all__ = ["PostsService", "CategoryService"]
