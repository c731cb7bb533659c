"""Tests for the cache key schema."""

import pytest

from hustle_data.cache_keys import CacheKeys


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        (CacheKeys.post("p1"), "post_p1"),
        (CacheKeys.user("u1"), "user_u1"),
        (CacheKeys.reel("r1"), "reel_r1"),
        (CacheKeys.status("s1"), "status_s1"),
        (CacheKeys.portfolio_card("c1"), "portfolio_card_c1"),
        (CacheKeys.posts_page(), "posts_page_1"),
        (CacheKeys.reels_page(), "reels_page_1"),
        (CacheKeys.statuses_page(), "statuses_page_1"),
        (CacheKeys.reviews_for_user("u1"), "reviews_user_u1"),
        (CacheKeys.saved("reel", "u1"), "saved_reel_u1"),
        (CacheKeys.saved("post", "u1"), "saved_post_u1"),
        (CacheKeys.user_portfolio("u1"), "portfolio_user_u1"),
        (CacheKeys.trending_reels(), "trending_reels"),
        (CacheKeys.trending_tags(), "trending_tags"),
        (CacheKeys.following_statuses("u1"), "statuses_following_u1"),
    ],
)
def test_key_formats(key, expected):
    assert key == expected


def test_following_statuses_is_per_viewer():
    assert CacheKeys.following_statuses("u1") != CacheKeys.following_statuses("u2")
    assert CacheKeys.following_statuses("u1").startswith(CacheKeys.following_statuses_prefix())


def test_entity_and_page_keys_never_collide():
    assert CacheKeys.post("page") != CacheKeys.posts_page()


def test_parse():
    assert CacheKeys.parse("reviews_user_u1") == ("reviews_user", "u1")
    assert CacheKeys.parse("trending") is None
