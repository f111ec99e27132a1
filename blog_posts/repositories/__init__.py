# blog_posts/repositories/__init__.py
from blog_posts.repositories.post_repository import PostRepository
from blog_posts.repositories.category_repository import CategoryRepository

__all__ = ["PostRepository", "CategoryRepository"]
