"""
Charge listing use-case for the merchant admin view.

Walks the provider's cursor pagination with a bounded retry per page, then
sorts newest-first and applies the display filter.
"""
from __future__ import annotations

from typing import Optional

from application.dtos.payments import Charge, ChargePage
from application.ports.commerce import CommerceGateway
from application.utils.backoff import BackoffPolicy
from core.logging_config import get_logger
from domain.common.exceptions import UpstreamUnavailableError


logger = get_logger(__name__)


class ChargeListingService:
    def __init__(
        self,
        gateway: CommerceGateway,
        backoff: Optional[BackoffPolicy] = None,
        *,
        max_pages: int = 100,
    ) -> None:
        self.gateway = gateway
        self.backoff = backoff or BackoffPolicy()
        self.max_pages = max_pages

    async def _fetch_page(self, cursor: Optional[str]) -> ChargePage:
        async for attempt in self.backoff.retrying((UpstreamUnavailableError,), operation="list_charges"):
            with attempt:
                return await self.gateway.list_charges(cursor=cursor)

    async def collect_all(self) -> list[Charge]:
        """Every charge the provider returns, newest first.

        A page that still fails after the retry budget ends the walk: the pages
        collected so far are returned, or the error is raised when none were.
        """
        charges: list[Charge] = []
        cursor: Optional[str] = None
        pages = 0

        while pages < self.max_pages:
            try:
                page = await self._fetch_page(cursor)
            except UpstreamUnavailableError as exc:
                if pages == 0:
                    logger.error("charges_listing_failed", error=exc.message)
                    raise
                logger.warning(
                    "charges_listing_partial",
                    pages=pages,
                    collected=len(charges),
                    error=exc.message,
                )
                break

            pages += 1
            charges.extend(page.charges)
            logger.debug("charges_page_fetched", page=pages, count=len(page.charges))

            if not page.cursor_next or page.cursor_next == cursor:
                break
            cursor = page.cursor_next
        else:
            logger.warning("charges_listing_page_limit_reached", max_pages=self.max_pages)

        charges.sort(key=lambda c: c.sort_key(), reverse=True)
        logger.info("charges_listing_collected", pages=pages, total=len(charges))
        return charges

    async def list_charges(self, *, valid_only: bool = True, payer: Optional[str] = None) -> list[Charge]:
        charges = await self.collect_all()
        if valid_only:
            charges = [c for c in charges if c.is_listable]
        if payer:
            charges = [c for c in charges if c.paid_by(payer)]
        return charges
