"""Publish cleaned markdown as a page in a Notion database."""

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import httpx

from pipeline.errors import PublishFailed, PublishNotConfigured
from .blocks import markdown_to_blocks, split_title

if TYPE_CHECKING:
    from utils.logger import NoteLogger


NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
DEFAULT_TIMEOUT_S = 30.0

# Notion accepts at most 100 children per request
MAX_CHILDREN_PER_REQUEST = 100

FALLBACK_TITLE_PROPERTY = "Name"


@dataclass
class PublishedPage:
    """A page created in the destination database."""

    page_id: str
    title: str
    url: str | None = None

    def to_dict(self) -> dict:
        """Convert to serializable dictionary."""
        return {"page_id": self.page_id, "title": self.title, "url": self.url}


class NotionPublisher:
    """Creates Notion pages from markdown through the Notion REST API."""

    def __init__(
        self,
        token: str | None,
        database_id: str | None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        base_url: str = NOTION_API_URL,
        transport: httpx.BaseTransport | None = None,
        logger: "NoteLogger | None" = None,
    ):
        """Initialize the publisher.

        Args:
            token: Notion integration token.
            database_id: Target database id.
            timeout_s: Per-request timeout.
            base_url: API root (overridable for tests).
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
            logger: Optional NoteLogger.
        """
        self.token = (token or "").strip()
        self.database_id = (database_id or "").strip()
        self.timeout_s = timeout_s
        self.base_url = base_url
        self.transport = transport
        self.logger = logger

    @property
    def is_configured(self) -> bool:
        return bool(self.token) and bool(self.database_id)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
            },
            timeout=self.timeout_s,
            transport=self.transport,
        )

    def publish(self, markdown: str, explicit_title: str | None = None) -> PublishedPage:
        """Create a page from markdown.

        The page title is the explicit title if given, else the document's
        leading H1 (which is then left out of the body), else "New Note".

        Raises:
            PublishNotConfigured: Token or database id missing.
            PublishFailed: Empty document, or any API/network error.
        """
        if not self.is_configured:
            raise PublishNotConfigured("No Notion token or database ID configured")
        if not markdown or not markdown.strip():
            raise PublishFailed("Markdown content is empty")

        blocks = markdown_to_blocks(markdown)
        if not blocks:
            raise PublishFailed("No content could be derived from markdown")

        title, body = split_title(blocks, explicit_title)
        children = [block.to_notion() for block in body]

        try:
            with self._client() as client:
                title_property = self._find_title_property(client)
                page = self._request(client, "POST", "/pages", json={
                    "parent": {"database_id": self.database_id},
                    "properties": {
                        title_property: {
                            "title": [{"type": "text", "text": {"content": title}}],
                        },
                    },
                    "children": children[:MAX_CHILDREN_PER_REQUEST],
                })
                page_id = page["id"]

                try:
                    for start in range(MAX_CHILDREN_PER_REQUEST, len(children), MAX_CHILDREN_PER_REQUEST):
                        batch = children[start:start + MAX_CHILDREN_PER_REQUEST]
                        self._request(client, "PATCH", f"/blocks/{page_id}/children", json={"children": batch})
                except (PublishFailed, httpx.HTTPError) as e:
                    # The page exists but is truncated; say where it is
                    reason = e.describe() if isinstance(e, PublishFailed) else str(e)
                    raise PublishFailed(
                        f"Notion page {page_id} was created but appending blocks failed",
                        status=getattr(e, "status", None),
                        detail=f"partial page {page.get('url') or page_id}: {reason}",
                    ) from e
        except httpx.TimeoutException as e:
            raise PublishFailed(f"Notion request timed out after {self.timeout_s:.0f}s", detail=str(e)) from e
        except httpx.HTTPError as e:
            raise PublishFailed("Could not reach Notion", detail=str(e)) from e
        except (ValueError, KeyError) as e:
            raise PublishFailed("Unexpected response from Notion", detail=str(e)) from e

        if self.logger:
            self.logger.success(f"Notion page created: [bold]{title}[/bold]")

        return PublishedPage(page_id=page_id, title=title, url=page.get("url"))

    def _find_title_property(self, client: httpx.Client) -> str:
        """Find the database property of type ``title``; its name varies per database."""
        database = self._request(client, "GET", f"/databases/{self.database_id}")
        for name, prop in (database.get("properties") or {}).items():
            if isinstance(prop, dict) and prop.get("type") == "title":
                return name
        return FALLBACK_TITLE_PROPERTY

    def _request(self, client: httpx.Client, method: str, url: str, **kwargs: Any) -> dict:
        response = client.request(method, url, **kwargs)
        if response.is_error:
            raise PublishFailed(
                f"Notion API error on {method} {url}: {response.status_code}",
                status=response.status_code,
                detail=_error_detail(response),
            )
        return response.json()


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text
