"""
External service clients for PRD Forge.

Provides the content generators and the Notion API client.
"""

from .generator import (
    ContentGenerator,
    GeneratedContent,
    GenerationError,
    LiveContentGenerator,
    MockContentGenerator,
    create_generator,
)
from .notion_client import NotionClient, NotionError

__all__ = [
    "ContentGenerator",
    "GeneratedContent",
    "GenerationError",
    "LiveContentGenerator",
    "MockContentGenerator",
    "create_generator",
    "NotionClient",
    "NotionError",
]
