"""
Session and generation tracking.

Writes session and generation records to the shared store and counts the
current session's generations for the free-tier gate.

Recording is best-effort telemetry: storage failures are logged and never
reach the caller. Counting returns an explicit CountResult so the caller
chooses how to treat a failed read.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from prd_forge.storage.models import (
    GENERATION_PREFIX,
    GenerationRecord,
    SessionRecord,
    decode_record,
)
from prd_forge.storage.repository import KeyValueStore, StorageError, load_values
from .session import SessionContext, generate_id
from .token_counter import TokenUsage

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GenerationData:
    """Details of one generation, as reported by the caller."""
    type: str
    template: str
    input: str = ""
    output: str = ""
    business_goal: Optional[str] = None
    usage: Optional[TokenUsage] = None
    cost: Optional[float] = None
    model: Optional[str] = None
    validation_score: Optional[int] = None
    success: bool = True


@dataclass(frozen=True)
class CountResult:
    """Count of generations, or the error that prevented counting."""
    count: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default: int) -> int:
        """Return the count, or default when counting failed."""
        return self.count if self.ok else default


class AnalyticsRecorder:
    """Records sessions and generations in the shared store."""

    def __init__(
        self,
        store: KeyValueStore,
        context: SessionContext,
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.context = context
        self.clock = clock

    def start_session(
        self,
        referrer: Optional[str] = None,
        user_agent: str = "",
        screen_size: str = ""
    ) -> bool:
        """Record the current session once.

        Args:
            referrer: Originating URL, "direct" when missing
            user_agent: Client description
            screen_size: Display size, e.g. "120x40"

        Returns:
            True when a new session record was written
        """
        try:
            session_id = self.context.session_id
            record = SessionRecord(
                session_id=session_id,
                timestamp=self.clock().isoformat(),
                referrer=referrer or "direct",
                user_agent=user_agent,
                screen_size=screen_size
            )
            if self.store.get(record.key) is not None:
                return False
            self.store.set(record.key, record.to_json())
        except StorageError:
            logger.exception("Error tracking session")
            return False

        logger.info("Session tracked: %s", session_id)
        return True

    def record_generation(self, data: GenerationData) -> Optional[str]:
        """Record one generation attempt.

        Every call writes a new record; nothing is deduplicated.

        Args:
            data: Generation details

        Returns:
            The new record id, or None when the write failed
        """
        try:
            record = GenerationRecord(
                id=generate_id("gen"),
                session_id=self.context.session_id,
                type=data.type,
                template=data.template,
                timestamp=self.clock().isoformat(),
                business_goal=data.business_goal or None,
                input_length=len(data.input or ""),
                output_length=len(data.output or ""),
                usage=data.usage,
                cost=data.cost,
                model=data.model,
                validation_score=data.validation_score,
                success=data.success is not False
            )
            self.store.set(record.key, record.to_json())
        except StorageError:
            logger.exception("Error tracking generation")
            return None

        logger.info("Generation tracked: %s", record.id)
        return record.id


class UsageCounter:
    """Counts the current session's generations straight from the store."""

    def __init__(self, store: KeyValueStore, context: SessionContext):
        self.store = store
        self.context = context

    def count_by_type(self, generation_type: str) -> CountResult:
        """Count generations of one type in the current session."""
        return self._count(generation_type)

    def count_all(self) -> CountResult:
        """Count all generations in the current session."""
        return self._count(None)

    def _count(self, generation_type: Optional[str]) -> CountResult:
        try:
            session_id = self.context.session_id
            count = 0
            for value in load_values(self.store, GENERATION_PREFIX):
                data = decode_record(value)
                if data.get("sessionId") != session_id:
                    continue
                if generation_type is not None and data.get("type") != generation_type:
                    continue
                count += 1
        except (StorageError, ValueError) as e:
            logger.error("Error getting session generation count: %s", e)
            return CountResult(error=e)
        return CountResult(count=count)
