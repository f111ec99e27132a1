# blog_posts/policy.py
"""
Who may create, edit, update and delete posts.

Edit-view (fetching a post to fill an edit form) is author-only, while update
is author-or-admin. The two rules differ on purpose and must not be merged
without a product decision.

Every check raises Unauthorized first when there is no actor, then NotFound when
the post is missing, then Forbidden.
"""
import logging
from typing import Optional, Dict, Any

from blog_posts import config
from blog_posts.auth import Actor
from blog_posts.errors import Unauthorized, Forbidden, NotFound

logger = logging.getLogger(__name__)


def ensure_authenticated(actor: Optional[Actor]) -> Actor:
    if actor is None:
        raise Unauthorized('Authentication required', error='NO_AUTH_HEADER')
    return actor


def _require_post(post: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if post is None:
        raise NotFound('Post not found')
    return post


def is_admin(actor: Actor) -> bool:
    return actor.role == config.ADMIN_ROLE


def is_author(actor: Actor, post: Dict[str, Any]) -> bool:
    return actor.subject == post.get('author_email')


def authorize_create(actor: Optional[Actor]) -> Actor:
    actor = ensure_authenticated(actor)
    if actor.role != config.POST_CREATE_ROLE:
        logger.warning(f"Post creation denied for {actor.subject} (role={actor.role})")
        raise Forbidden('Insufficient role to create posts')
    return actor


def authorize_edit_view(actor: Optional[Actor], post: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    actor = ensure_authenticated(actor)
    post = _require_post(post)
    if not is_author(actor, post):
        logger.warning(f"Edit view of post {post.get('id')} denied for {actor.subject}")
        raise Forbidden('Only the author can edit this post')
    return post


def authorize_update(actor: Optional[Actor], post: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    actor = ensure_authenticated(actor)
    post = _require_post(post)
    if not (is_admin(actor) or is_author(actor, post)):
        logger.warning(f"Update of post {post.get('id')} denied for {actor.subject}")
        raise Forbidden('Only the author or admin can edit this post')
    return post


def authorize_delete(actor: Optional[Actor]) -> Actor:
    actor = ensure_authenticated(actor)
    if not is_admin(actor):
        logger.warning(f"Post deletion denied for {actor.subject} (role={actor.role})")
        raise Forbidden('Only an admin can delete posts')
    return actor


def authorize_admin(actor: Optional[Actor]) -> Actor:
    """Category mutations share the admin-only rule."""
    actor = ensure_authenticated(actor)
    if not is_admin(actor):
        logger.warning(f"Admin operation denied for {actor.subject} (role={actor.role})")
        raise Forbidden('Admin role required')
    return actor
