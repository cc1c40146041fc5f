"""Confluence publishing sink.

Publishes a rendered report as a child page of a configured parent page.
A page whose title already exists (as a current page anywhere under the
search ancestor) is left alone, so a rerun never creates a duplicate.
Credentials come from ``CONFLUENCE_EMAIL`` and ``CONFLUENCE_API_TOKEN``.
"""

import html
import logging
import os

import requests

from ..errors import ConfigurationError
from ..schema.loader import ConfluenceConfig

logger = logging.getLogger(__name__)

EMAIL_ENV = "CONFLUENCE_EMAIL"
TOKEN_ENV = "CONFLUENCE_API_TOKEN"


class ConfluenceError(RuntimeError):
    """Raised when the Confluence API rejects a request."""


def storage_body(text: str) -> str:
    """Wrap plain report text as a preformatted storage-format body."""
    return f"<pre>{html.escape(text, quote=False)}</pre>"


class ConfluenceClient:
    """Minimal Confluence Cloud content API client."""

    def __init__(self, config: ConfluenceConfig,
                 email: str | None = None,
                 api_token: str | None = None,
                 session: requests.Session | None = None,
                 timeout_seconds: float = 30.0) -> None:
        self.config = config
        email = email if email is not None else os.getenv(EMAIL_ENV, "")
        api_token = api_token if api_token is not None else os.getenv(TOKEN_ENV, "")
        missing = [name for name, value in (
            ("domain", config.domain),
            ("space_key", config.space_key),
            ("parent_page_id", config.parent_page_id),
            (EMAIL_ENV, email),
            (TOKEN_ENV, api_token),
        ) if not value]
        if missing:
            raise ConfigurationError(
                "Missing Confluence setting(s): " + ", ".join(missing)
            )
        self._session = session or requests.Session()
        self._session.auth = (email, api_token)
        self._timeout = timeout_seconds

    @property
    def base_url(self) -> str:
        domain = self.config.domain.strip().rstrip("/")
        if domain.startswith("http"):
            return f"{domain}/wiki"
        if "." not in domain:
            domain = f"{domain}.atlassian.net"
        return f"https://{domain}/wiki"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise ConfluenceError(f"Confluence request failed: {exc}") from exc

    def page_exists(self, title: str) -> bool:
        """True when a current page with *title* exists under the search ancestor."""
        ancestor = self.config.search_ancestor_id or self.config.parent_page_id
        escaped = title.replace('"', '\\"')
        cql = f'ancestor={ancestor} and title="{escaped}" and type=page'
        response = self._request(
            "GET",
            f"{self.base_url}/rest/api/content/search",
            params={"cql": cql, "status": "current"},
        )
        if response.status_code != 200:
            raise ConfluenceError(
                f"Confluence search failed: {response.status_code} - {response.text[:200]}"
            )
        results = response.json().get("results") or []
        return len(results) > 0

    def create_page(self, title: str, text: str) -> str:
        """Create a child page of the parent page; returns its web URL."""
        payload = {
            "type": "page",
            "title": title,
            "space": {"key": self.config.space_key},
            "ancestors": [{"id": self.config.parent_page_id}],
            "body": {
                "storage": {
                    "value": storage_body(text),
                    "representation": "storage",
                },
            },
        }
        logger.info("Creating Confluence page: %s", title)
        response = self._request(
            "POST",
            f"{self.base_url}/rest/api/content",
            json=payload,
        )
        if response.status_code != 200:
            raise ConfluenceError(
                f"Confluence API error: {response.status_code} - {response.text[:200]}"
            )
        links = response.json().get("_links") or {}
        return f"{self.base_url}{links.get('webui', '')}"


def publish_report(client: ConfluenceClient, title: str, text: str) -> str | None:
    """Publish *text* unless a page called *title* already exists.

    Returns the new page URL, or None when creation was skipped.
    """
    if client.page_exists(title):
        logger.info("Page already exists: %r - skipping creation", title)
        return None
    url = client.create_page(title, text)
    logger.info("Page created: %s", url)
    return url
