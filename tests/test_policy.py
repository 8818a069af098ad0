import pytest

from policy import can_create_post, quota_message


@pytest.mark.parametrize("count", [0, 1, 4])
def test_non_member_under_limit(count):
    assert can_create_post(False, count)


@pytest.mark.parametrize("count", [5, 6, 100])
def test_non_member_at_or_over_limit(count):
    assert not can_create_post(False, count)


@pytest.mark.parametrize("count", [0, 5, 1000])
def test_member_is_never_limited(count):
    assert can_create_post(True, count)


def test_explicit_limit():
    assert can_create_post(False, 1, limit=2)
    assert not can_create_post(False, 2, limit=2)


def test_quota_message_mentions_limit():
    assert quota_message() == "You can only create up to 5 posts. Become a member to add more posts."
    assert "10 posts" in quota_message(10)
