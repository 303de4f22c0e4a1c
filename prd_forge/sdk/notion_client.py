"""
Notion API client.

Creates one database page per user story and checks access to the target
database.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ..core.session import NotionCredentials
from ..core.story_parser import ParsedStory, parse_story

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
DEFAULT_TIMEOUT = 30.0
DEFAULT_STATUS = "To Do"


class NotionError(Exception):
    """Raised when Notion rejects a request or cannot be reached."""


@dataclass(frozen=True)
class DatabaseInfo:
    """Title and properties of the target Notion database."""
    title: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def property_names(self) -> List[str]:
        return list(self.properties)


@dataclass(frozen=True)
class PageResult:
    """A page created in Notion."""
    page_id: str
    url: Optional[str]
    title: str


def _rich_text(content: str) -> List[Dict[str, Any]]:
    return [{"type": "text", "text": {"content": content}}]


def build_page_payload(story: ParsedStory, database_id: str, status: str = DEFAULT_STATUS) -> Dict[str, Any]:
    """Build the POST /pages body for a parsed story.

    Properties carry title, type, story points, priority and status.
    Children hold the verbatim text followed by one to-do block per
    acceptance criterion.
    """
    properties: Dict[str, Any] = {
        "Name": {"title": [{"text": {"content": story.title or "Untitled User Story"}}]},
    }
    if story.type:
        properties["Type"] = {"select": {"name": story.type}}
    if story.story_points:
        properties["Story Points"] = {"number": story.story_points}
    if story.priority:
        properties["Priority"] = {"select": {"name": story.priority}}
    properties["Status"] = {"select": {"name": status}}

    children: List[Dict[str, Any]] = [{
        "object": "block",
        "type": "paragraph",
        "paragraph": {"rich_text": _rich_text(story.full_content)},
    }]

    if story.acceptance_criteria:
        children.append({
            "object": "block",
            "type": "heading_3",
            "heading_3": {"rich_text": _rich_text("Acceptance Criteria")},
        })
        for criterion in story.acceptance_criteria:
            children.append({
                "object": "block",
                "type": "to_do",
                "to_do": {"rich_text": _rich_text(criterion), "checked": False},
            })

    return {
        "parent": {"database_id": database_id},
        "properties": properties,
        "children": children,
    }


class NotionClient:
    """Minimal client for the Notion endpoints used by story export."""

    def __init__(
        self,
        credentials: NotionCredentials,
        api_url: str = NOTION_API_URL,
        version: str = NOTION_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        """Initialize the client.

        Raises:
            NotionError: If the token or database id is missing
        """
        if not credentials.is_complete:
            raise NotionError("Notion integration token and database ID are required")

        self.credentials = credentials
        self.api_url = api_url.rstrip("/")
        self.version = version
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credentials.token}",
            "Notion-Version": self.version,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, failure: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(
                method,
                f"{self.api_url}{path}",
                headers=self._headers,
                timeout=self.timeout,
                **kwargs
            )
        except requests.RequestException as e:
            raise NotionError(f"{failure}: {e}") from e

        if not response.ok:
            try:
                message = response.json().get("message")
            except (ValueError, AttributeError):
                message = None
            logger.error("Notion API error %s: %s", response.status_code, message)
            raise NotionError(message or f"{failure}: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise NotionError(f"{failure}: invalid JSON response") from e
        if not isinstance(data, dict):
            raise NotionError(f"{failure}: unexpected response body")
        return data

    def get_database(self) -> DatabaseInfo:
        """Fetch the database title and property schema."""
        data = self._request(
            "GET",
            f"/databases/{self.credentials.database_id}",
            "Failed to get database schema"
        )
        title = data.get("title") or []
        return DatabaseInfo(
            title=title[0].get("plain_text", "Untitled Database") if title else "Untitled Database",
            properties=data.get("properties") or {}
        )

    def test_connection(self) -> DatabaseInfo:
        """Verify the token can read the database.

        Raises:
            NotionError: With Notion's message when access fails
        """
        return self.get_database()

    def create_page(self, story_text: str) -> PageResult:
        """Parse a story and create a page for it in the database."""
        story = parse_story(story_text)
        payload = build_page_payload(story, self.credentials.database_id)
        data = self._request("POST", "/pages", "Failed to create Notion page", json=payload)
        logger.debug("Created Notion page %s", data.get("id"))
        return PageResult(page_id=data.get("id", ""), url=data.get("url"), title=story.title)
