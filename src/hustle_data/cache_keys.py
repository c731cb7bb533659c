"""Cache key schema.

Key formats:
- single entity:      {entity}_{id}                 e.g. post_abc123
- first page listing: {entity}s_page_1              e.g. posts_page_1
- relation scoped:    {relation}_{parent_id}        e.g. reviews_user_u1, saved_reel_u1
- aggregate views:    fixed descriptive name        e.g. trending_reels, trending_tags
                      or name + viewer suffix       e.g. statuses_following_u1

Every read path and every invalidating write path builds keys through
these methods; no module spells a key by hand.
"""

from __future__ import annotations


class CacheKeys:
    """Cache key generator following one naming convention."""

    SEPARATOR = "_"
    TRENDING_REELS = "trending_reels"
    TRENDING_TAGS = "trending_tags"
    FOLLOWING_STATUSES = "statuses_following"

    # -------------------------------------------------------------------------
    # Patterns
    # -------------------------------------------------------------------------

    @classmethod
    def entity(cls, entity_name: str, entity_id: str) -> str:
        """Key for a single entity by id."""
        return f"{entity_name}{cls.SEPARATOR}{entity_id}"

    @classmethod
    def first_page(cls, entity_name: str) -> str:
        """Key for the first page of a default-ordered listing.

        Only page 1 is ever cached; cursor pages always go to the store.
        """
        return f"{entity_name}s{cls.SEPARATOR}page{cls.SEPARATOR}1"

    @classmethod
    def relation(cls, relation_name: str, parent_id: str) -> str:
        """Key for a collection scoped to a parent entity."""
        return f"{relation_name}{cls.SEPARATOR}{parent_id}"

    # -------------------------------------------------------------------------
    # Single entities
    # -------------------------------------------------------------------------

    @classmethod
    def post(cls, post_id: str) -> str:
        return cls.entity("post", post_id)

    @classmethod
    def user(cls, user_id: str) -> str:
        return cls.entity("user", user_id)

    @classmethod
    def reel(cls, reel_id: str) -> str:
        return cls.entity("reel", reel_id)

    @classmethod
    def comment(cls, comment_id: str) -> str:
        return cls.entity("comment", comment_id)

    @classmethod
    def review(cls, review_id: str) -> str:
        return cls.entity("review", review_id)

    @classmethod
    def message(cls, message_id: str) -> str:
        return cls.entity("message", message_id)

    @classmethod
    def conversation(cls, conversation_id: str) -> str:
        return cls.entity("conversation", conversation_id)

    @classmethod
    def status(cls, status_id: str) -> str:
        return cls.entity("status", status_id)

    @classmethod
    def portfolio_card(cls, card_id: str) -> str:
        return cls.entity("portfolio_card", card_id)

    # -------------------------------------------------------------------------
    # First pages
    # -------------------------------------------------------------------------

    @classmethod
    def posts_page(cls) -> str:
        return cls.first_page("post")

    @classmethod
    def reels_page(cls) -> str:
        return cls.first_page("reel")

    @classmethod
    def statuses_page(cls) -> str:
        # "statuss" would be the mechanical plural
        return f"statuses{cls.SEPARATOR}page{cls.SEPARATOR}1"

    # -------------------------------------------------------------------------
    # Relations
    # -------------------------------------------------------------------------

    @classmethod
    def reviews_for_user(cls, user_id: str) -> str:
        """Reviews written about `user_id`."""
        return cls.relation("reviews_user", user_id)

    @classmethod
    def saved(cls, item_type: str, user_id: str) -> str:
        """Items of `item_type` saved by `user_id`."""
        return cls.relation(f"saved_{item_type}", user_id)

    @classmethod
    def conversation_messages(cls, conversation_id: str) -> str:
        return cls.relation("messages", conversation_id)

    @classmethod
    def user_conversations(cls, user_id: str) -> str:
        return cls.relation("conversations_user", user_id)

    @classmethod
    def user_portfolio(cls, user_id: str) -> str:
        return cls.relation("portfolio_user", user_id)

    @classmethod
    def reel_comments(cls, reel_id: str) -> str:
        return cls.relation("comments_reel", reel_id)

    @classmethod
    def user_notifications(cls, user_id: str) -> str:
        return cls.relation("notifications_user", user_id)

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    @classmethod
    def trending_reels(cls) -> str:
        return cls.TRENDING_REELS

    @classmethod
    def trending_tags(cls) -> str:
        return cls.TRENDING_TAGS

    @classmethod
    def following_statuses(cls, viewer_id: str) -> str:
        """Statuses from the accounts `viewer_id` follows."""
        return f"{cls.FOLLOWING_STATUSES}{cls.SEPARATOR}{viewer_id}"

    @classmethod
    def following_statuses_prefix(cls) -> str:
        """Prefix covering every viewer's following-statuses key."""
        return f"{cls.FOLLOWING_STATUSES}{cls.SEPARATOR}"

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @classmethod
    def parse(cls, key: str) -> tuple[str, str] | None:
        """Split a key into (namespace, identifier) at its last separator.

        Returns None for keys without a separator.
        """
        namespace, sep, identifier = key.rpartition(cls.SEPARATOR)
        if not sep or not namespace or not identifier:
            return None
        return namespace, identifier
