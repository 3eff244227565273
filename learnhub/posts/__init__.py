"""Community posts module: feed, likes, pinning and comments."""

from .models import POSTS_TABLES_CQL, Post, PostComment


__all__ = ["POSTS_TABLES_CQL", "Post", "PostComment"]
