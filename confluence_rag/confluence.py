"""Confluence REST API connector."""

from typing import Any

import requests
from requests.auth import HTTPBasicAuth

from .config import config
from .errors import ConfigurationError
from .models import RawPage

logger = config.get_logger(__name__)

CONTENT_EXPAND = "body.storage,version,space"


class ConfluenceClient:
    """Fetches every page of a Confluence space."""

    def __init__(  # noqa: PLR0913
        self,
        base_url: str | None = None,
        username: str | None = None,
        api_token: str | None = None,
        space_key: str | None = None,
        *,
        page_limit: int | None = None,
        max_pages: int | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client, falling back to config for unset values.

        Args:
            base_url: Root URL of the Confluence site.
            username: Account used for basic authentication.
            api_token: API token paired with ``username``.
            space_key: Key of the space whose pages are fetched.
            page_limit: Number of pages requested per API call.
            max_pages: Upper bound on the number of pages fetched in total.
            timeout: Per-request timeout in seconds.
            session: Optional preconfigured requests session.
        """
        self.base_url = (base_url or config.CONFLUENCE_URL).rstrip("/")
        self.username = username or config.CONFLUENCE_USERNAME
        self.api_token = api_token or config.CONFLUENCE_API_TOKEN
        self.space_key = space_key or config.CONFLUENCE_SPACE_KEY
        self.page_limit = page_limit or config.CONFLUENCE_PAGE_LIMIT
        self.max_pages = max_pages or config.CONFLUENCE_MAX_PAGES
        self.timeout = timeout or config.CONFLUENCE_TIMEOUT
        self.session = session or requests.Session()

    def _check_configuration(self) -> None:
        missing = [
            name
            for name, value in (
                ("CONFLUENCE_URL", self.base_url),
                ("CONFLUENCE_USERNAME", self.username),
                ("CONFLUENCE_API_TOKEN", self.api_token),
                ("CONFLUENCE_SPACE_KEY", self.space_key),
            )
            if not value
        ]
        if missing:
            msg = f"Missing Confluence configuration: {', '.join(missing)}"
            raise ConfigurationError(msg)

    def page_url(self, page_id: str) -> str:
        """Build the canonical browser URL of a page.

        Returns:
            Absolute URL of the page inside its space.
        """
        return f"{self.base_url}/spaces/{self.space_key}/pages/{page_id}"

    def _to_raw_page(self, payload: dict[str, Any]) -> RawPage:
        page_id = str(payload["id"])
        body = ((payload.get("body") or {}).get("storage") or {}).get("value") or ""
        version = (payload.get("version") or {}).get("number")
        space = (payload.get("space") or {}).get("name")
        return RawPage(
            id=page_id,
            title=payload.get("title") or "",
            url=self.page_url(page_id),
            body=body,
            version=int(version) if version is not None else None,
            space=space,
        )

    def _get_content(self, start: int) -> dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}/rest/api/content",
            params={
                "spaceKey": self.space_key,
                "expand": CONTENT_EXPAND,
                "limit": self.page_limit,
                "start": start,
            },
            headers={"Accept": "application/json", **config.get_api_headers()},
            auth=HTTPBasicAuth(self.username, self.api_token),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def fetch_documents(self) -> list[RawPage]:
        """Fetch all pages of the configured space, following pagination.

        Returns:
            Raw pages in the order the API returned them.

        Raises:
            ConfigurationError: If connection settings are incomplete.
            requests.RequestException: If a request fails.
        """
        self._check_configuration()
        logger.info("Fetching pages from Confluence space: %s", self.space_key)

        pages: list[RawPage] = []
        start = 0
        try:
            while len(pages) < self.max_pages:
                data = self._get_content(start)
                results = data.get("results") or []
                pages.extend(self._to_raw_page(item) for item in results)
                logger.debug("Fetched %d pages starting at %d", len(results), start)

                if not results or "next" not in (data.get("_links") or {}):
                    break
                start += len(results)
        except requests.RequestException:
            logger.exception("Error fetching Confluence pages")
            raise

        if len(pages) > self.max_pages:
            logger.warning(
                "Space %s has more than %d pages; ignoring the rest",
                self.space_key,
                self.max_pages,
            )
            pages = pages[: self.max_pages]

        logger.info("Found %d pages", len(pages))
        return pages
