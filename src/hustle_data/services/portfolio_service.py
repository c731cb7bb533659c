"""Portfolio card service."""

import dataclasses
from collections.abc import Iterable

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import FilterOp
from hustle_data.entities import PortfolioCard
from hustle_data.validation import validate_portfolio_card

from .base import PORTFOLIO_CARDS, EntityService


class PortfolioService(EntityService[PortfolioCard]):
    """Showcase cards on a provider's profile. Cards are hard-deleted."""

    collection = PORTFOLIO_CARDS
    entity_type = PortfolioCard
    cache_name = "portfolio_card"
    max_age_setting = "portfolio_cache_max_age"

    def _related_keys(self, entity: PortfolioCard) -> list[str]:
        return [CacheKeys.user_portfolio(entity.user_id)]

    async def _prepare_create(self, entity: PortfolioCard, user_id: str) -> PortfolioCard:
        validate_portfolio_card(entity)
        entity = await super()._prepare_create(entity, user_id)
        return dataclasses.replace(entity, title=entity.title.strip())

    async def _prepare_update(
        self, entity: PortfolioCard, stored: PortfolioCard, user_id: str
    ) -> PortfolioCard:
        validate_portfolio_card(entity)
        entity = await super()._prepare_update(entity, stored, user_id)
        return dataclasses.replace(entity, title=entity.title.strip())

    async def fetch_user_portfolio_cards(self, user_id: str) -> list[PortfolioCard]:
        """All cards of `user_id`, newest first."""

        async def load() -> list[PortfolioCard]:
            query = (
                self._base_query()
                .where("user_id", FilterOp.EQ, user_id)
                .order("created_at", descending=True)
            )
            return await self._query_entities(query)

        return await self._read_through(CacheKeys.user_portfolio(user_id), load)

    async def create_portfolio_card_with_media(
        self,
        card: PortfolioCard,
        cover: bytes | None = None,
        media: Iterable[bytes] = (),
    ) -> str:
        """Upload the cover and gallery images, then create the card.

        Returns:
            The new card id
        """
        user_id = self._require_user()
        validate_portfolio_card(card)
        cover_url = card.cover_image_url
        if cover is not None:
            (cover_url,) = await self._upload_media([cover], "portfolio_covers", user_id)
        media_urls = list(card.media_urls)
        media = list(media)
        if media:
            media_urls.extend(await self._upload_media(media, "portfolio", user_id))
        return await self.create(
            dataclasses.replace(card, user_id=user_id, cover_image_url=cover_url, media_urls=media_urls)
        )
