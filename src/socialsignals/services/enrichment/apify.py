"""Apify client for engagement scraping and profile enrichment."""

import asyncio
import math

import httpx
import pydantic
import structlog

from socialsignals.config import settings
from socialsignals.errors import ConfigurationError, ScrapeError, UpstreamTimeout
from socialsignals.schemas.scrape import ProviderProfile
from socialsignals.services.enrichment.provider import EnrichmentOutcome, ScrapeResult
from socialsignals.services.identity.identifiers import extract_handle, normalize_raw_id

logger = structlog.get_logger()


class ApifyClient:
    """
    Runs Apify actors synchronously and returns their dataset items.

    API Documentation: https://docs.apify.com/api/v2#/reference/actors/run-actor-synchronously-and-get-dataset-items

    One client covers the three actors the pipeline needs: post reactions,
    post comments and the profile batch scraper.
    """

    # Retry config for 429 errors
    BASE_RETRY_DELAY_S = 5.0

    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        max_concurrent_posts: int | None = None,
    ):
        token = api_token
        if token is None and settings.apify_api_token is not None:
            token = settings.apify_api_token.get_secret_value()
        if not token:
            raise ConfigurationError("Apify API token not configured")
        self.api_token = token
        self.base_url = (base_url or settings.apify_base_url).rstrip("/")
        self.timeout = timeout or settings.apify_request_timeout
        self.max_retries = settings.apify_retry_attempts if max_retries is None else max_retries
        self.max_concurrent_posts = max_concurrent_posts or settings.scrape_max_concurrent_posts
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.api_token}"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def run_actor(self, actor_id: str, run_input: dict) -> list[dict]:
        """Run an actor to completion and return its dataset items."""
        client = await self._get_client()
        url = f"{self.base_url}/acts/{actor_id}/run-sync-get-dataset-items"
        retry_count = 0

        while True:
            try:
                response = await client.post(url, json=run_input)
            except httpx.TimeoutException as e:
                raise UpstreamTimeout(f"Apify actor {actor_id} timed out", actor=actor_id) from e

            if response.status_code == 429 and retry_count < self.max_retries:
                retry_count += 1
                delay = self.BASE_RETRY_DELAY_S * (2 ** (retry_count - 1))
                logger.warning(
                    "Apify rate limit hit",
                    actor=actor_id,
                    retry=retry_count,
                    max_retries=self.max_retries,
                    delay_seconds=delay,
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code in (401, 403):
                raise ConfigurationError("Authentication failed with Apify", status=response.status_code)

            response.raise_for_status()
            try:
                data = response.json()
            except ValueError as e:
                raise ScrapeError(f"Apify actor {actor_id} returned a non-JSON body", actor=actor_id) from e
            return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []

    # Reactions

    async def _reaction_page(self, post_url: str, page_number: int) -> list[dict]:
        items = await self.run_actor(
            settings.apify_reactions_actor,
            {"post_url": post_url, "page_number": page_number, "limit": settings.reactions_page_size},
        )
        reactions = [i for i in items if "reaction_type" in i]
        for item in reactions:
            metadata = item.setdefault("_metadata", {})
            if isinstance(metadata, dict):
                metadata.setdefault("page_number", page_number)
        return reactions

    async def _post_reactions(self, post_url: str) -> list[dict]:
        first_page = await self._reaction_page(post_url, 1)
        if not first_page:
            return []

        metadata = first_page[0].get("_metadata") or {}
        total = metadata.get("total_reactions") or 0
        pages = min(math.ceil(total / settings.reactions_page_size), settings.reactions_max_pages)
        if pages <= 1:
            return first_page

        results = await asyncio.gather(
            *(self._reaction_page(post_url, page) for page in range(2, pages + 1)),
            return_exceptions=True,
        )
        reactions = list(first_page)
        for page, result in enumerate(results, start=2):
            if isinstance(result, BaseException):
                logger.warning("Reaction page failed", post_url=post_url, page=page, error=str(result))
                continue
            reactions.extend(result)

        logger.info("Scraped reactions", post_url=post_url, pages=pages, total_hint=total, reactions=len(reactions))
        return reactions

    async def scrape_reactions(self, post_urls: list[str]) -> ScrapeResult:
        return await self._scrape_posts(post_urls, self._post_reactions)

    # Comments

    async def _post_comments(self, post_url: str) -> list[dict]:
        # No total hint for comments: read pages until one comes back short
        comments: list[dict] = []
        page_number = 1
        while page_number <= settings.comments_max_pages:
            items = await self.run_actor(
                settings.apify_comments_actor,
                {"postIds": [post_url], "page_number": page_number, "limit": settings.comments_page_size},
            )
            page = [i for i in items if "comment_id" in i]
            for item in page:
                metadata = item.setdefault("_metadata", {})
                if isinstance(metadata, dict):
                    metadata.setdefault("page_number", page_number)
            comments.extend(page)
            if len(items) < settings.comments_page_size:
                break
            page_number += 1

        pages = min(page_number, settings.comments_max_pages)
        logger.info("Scraped comments", post_url=post_url, pages=pages, comments=len(comments))
        return comments

    async def scrape_comments(self, post_urls: list[str]) -> ScrapeResult:
        return await self._scrape_posts(post_urls, self._post_comments)

    async def _scrape_posts(self, post_urls: list[str], fetch) -> ScrapeResult:
        semaphore = asyncio.Semaphore(self.max_concurrent_posts)
        result = ScrapeResult()

        async def one(post_url: str) -> None:
            async with semaphore:
                try:
                    result.items[post_url] = await fetch(post_url)
                except (httpx.HTTPError, UpstreamTimeout, ConfigurationError, ScrapeError) as e:
                    logger.error("Post scrape failed", post_url=post_url, error=str(e))
                    result.errors[post_url] = str(e) or type(e).__name__

        await asyncio.gather(*(one(url) for url in dict.fromkeys(post_urls)))
        return result

    # Profiles

    async def enrich_profiles(self, lookup_keys: list[str]) -> dict[str, EnrichmentOutcome]:
        """Enrich one batch. Results are keyed by the lookup key they answer."""
        keys = list(dict.fromkeys(k for k in lookup_keys if k))
        if not keys:
            return {}

        items = await self.run_actor(
            settings.apify_profiles_actor,
            {"usernames": keys, "includeEmail": False},
        )

        by_lower = {k.lower(): k for k in keys}
        outcomes: dict[str, EnrichmentOutcome] = {}
        for item in items:
            try:
                parsed = ProviderProfile.model_validate(item)
            except pydantic.ValidationError as e:
                logger.warning("Unparseable enrichment item", error=str(e))
                continue

            key = self._match_key(parsed, by_lower)
            if key is None or key in outcomes:
                logger.debug("Enrichment item did not map to a requested key", message=parsed.message)
                continue
            if parsed.is_not_found:
                outcomes[key] = EnrichmentOutcome.not_found(key)
            else:
                outcomes[key] = EnrichmentOutcome.found(key, parsed.to_enriched())

        for key in keys:
            outcomes.setdefault(key, EnrichmentOutcome.not_found(key))
        return outcomes

    @staticmethod
    def _match_key(parsed: ProviderProfile, by_lower: dict[str, str]) -> str | None:
        info = parsed.basic_info
        candidates = [
            extract_handle(parsed.profile_url),
            parsed.profile_url,
            info.public_identifier if info else None,
            normalize_raw_id(info.urn) if info else None,
        ]
        for candidate in candidates:
            if candidate and candidate.lower() in by_lower:
                return by_lower[candidate.lower()]
        return None
