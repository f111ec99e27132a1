# blog_posts/sanitize.py
import bleach


def sanitize_text(value):
    """Strip every HTML tag from a plain-text field (title, description, topic, tags)."""
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True)


def sanitize_tags(tags):
    if tags is None:
        return None
    return [sanitize_text(tag) for tag in tags]
