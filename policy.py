"""Membership gate for post creation."""

import settings


def quota_message(limit: int = None) -> str:
    limit = settings.FREE_POST_LIMIT if limit is None else limit
    return f"You can only create up to {limit} posts. Become a member to add more posts."


def can_create_post(is_member: bool, post_count: int, limit: int = None) -> bool:
    """Members post without limit; everyone else needs fewer than ``limit`` posts."""
    if is_member:
        return True
    limit = settings.FREE_POST_LIMIT if limit is None else limit
    return post_count < limit
