"""
Batch export of user stories.

Submits stories one at a time with a fixed delay between submissions,
reports progress after every item and keeps going when an item fails.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from ..sdk.notion_client import NotionClient, NotionError, PageResult

logger = logging.getLogger(__name__)

# Notion allows roughly 3 requests per second
DEFAULT_DELAY_SECONDS = 0.35


@dataclass(frozen=True)
class ExportItemResult:
    """Outcome of exporting one item."""
    index: int
    success: bool
    data: Any = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ExportProgress:
    """Snapshot passed to the progress callback after each item."""
    current: int
    total: int
    success: int
    failed: int
    latest_result: Any = None
    error: Optional[str] = None


@dataclass
class ExportReport:
    """Aggregate outcome of a batch export."""
    total: int
    success: int = 0
    failed: int = 0
    results: List[ExportItemResult] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return self.success > 0 and self.failed > 0


def export_all(
    items: Sequence[str],
    submit: Callable[[str], Any],
    on_progress: Optional[Callable[[ExportProgress], None]] = None,
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep
) -> ExportReport:
    """Export items in order, one at a time.

    Waits delay_seconds before every item except the first. A failing item
    is recorded and the batch continues; nothing is retried.

    Args:
        items: Story texts in export order
        submit: Exports one item and returns its result
        on_progress: Called after every item, successful or not
        delay_seconds: Pause between consecutive submissions
        sleep: Sleep function

    Returns:
        ExportReport with per-item results
    """
    report = ExportReport(total=len(items))

    for index, item in enumerate(items):
        if index > 0 and delay_seconds > 0:
            sleep(delay_seconds)

        try:
            data = submit(item)
        except Exception as e:
            logger.warning("Export of item %d failed: %s", index, e)
            report.failed += 1
            report.results.append(ExportItemResult(index=index, success=False, error=str(e)))
            progress = ExportProgress(
                current=index + 1,
                total=report.total,
                success=report.success,
                failed=report.failed,
                error=str(e)
            )
        else:
            report.success += 1
            report.results.append(ExportItemResult(index=index, success=True, data=data))
            progress = ExportProgress(
                current=index + 1,
                total=report.total,
                success=report.success,
                failed=report.failed,
                latest_result=data
            )

        if on_progress is not None:
            on_progress(progress)

    logger.info(
        "Export finished: %d succeeded, %d failed of %d",
        report.success, report.failed, report.total
    )
    return report


class NotionExporter:
    """Exports user stories to a Notion database."""

    def __init__(
        self,
        client: NotionClient,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.client = client
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def export_one(self, story_text: str) -> PageResult:
        return self.client.create_page(story_text)

    def export_all(
        self,
        stories: Sequence[str],
        on_progress: Optional[Callable[[ExportProgress], None]] = None
    ) -> ExportReport:
        """Create one Notion page per story.

        Raises:
            NotionError: If credentials are incomplete, before any item runs
        """
        if not self.client.credentials.is_complete:
            raise NotionError("Notion integration token and database ID are required")
        return export_all(
            stories,
            self.client.create_page,
            on_progress=on_progress,
            delay_seconds=self.delay_seconds,
            sleep=self.sleep
        )
