"""
Data models for storage layer.

Defines the session and generation records kept in the key/value store.
Records are stored as JSON text using camelCase field names.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from prd_forge.core.token_counter import TokenUsage


SESSION_PREFIX = "session:"
GENERATION_PREFIX = "generation:"

GENERATION_TYPES = ("user_story", "prd", "user_story_workflow")


@dataclass(frozen=True)
class SessionRecord:
    """One visit of an installation.

    Written once per session id and never modified.
    """
    session_id: str
    timestamp: str
    referrer: str = "direct"
    user_agent: str = ""
    screen_size: str = ""
    location: str = "Unknown"

    @property
    def key(self) -> str:
        return f"{SESSION_PREFIX}{self.session_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "referrer": self.referrer,
            "userAgent": self.user_agent,
            "location": self.location,
            "screenSize": self.screen_size,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        return cls(
            session_id=data.get("sessionId", ""),
            timestamp=data.get("timestamp", ""),
            referrer=data.get("referrer") or "Direct",
            user_agent=data.get("userAgent", ""),
            screen_size=data.get("screenSize", ""),
            location=data.get("location", "Unknown"),
        )


@dataclass(frozen=True)
class GenerationRecord:
    """Immutable record of one content generation attempt.

    Older records only carry input/output character counts. Newer ones add
    token usage, estimated cost, model and a validation score.
    """
    id: str
    session_id: str
    type: str
    template: str
    timestamp: str
    business_goal: Optional[str] = None
    input_length: int = 0
    output_length: int = 0
    usage: Optional[TokenUsage] = None
    cost: Optional[float] = None
    model: Optional[str] = None
    validation_score: Optional[int] = None
    success: bool = True

    @property
    def key(self) -> str:
        return f"{GENERATION_PREFIX}{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "sessionId": self.session_id,
            "type": self.type,
            "template": self.template,
            "businessGoal": self.business_goal,
            "inputLength": self.input_length,
            "outputLength": self.output_length,
            "timestamp": self.timestamp,
            "success": self.success,
        }
        if self.usage is not None:
            data["usage"] = {
                "input_tokens": self.usage.input_tokens,
                "output_tokens": self.usage.output_tokens,
            }
        if self.cost is not None:
            data["cost"] = self.cost
        if self.model is not None:
            data["model"] = self.model
        if self.validation_score is not None:
            data["validationScore"] = self.validation_score
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationRecord":
        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            usage = TokenUsage(
                input_tokens=int(raw_usage.get("input_tokens") or 0),
                output_tokens=int(raw_usage.get("output_tokens") or 0),
            )
        cost = data.get("cost")
        return cls(
            id=data.get("id", ""),
            session_id=data.get("sessionId", ""),
            type=data.get("type", ""),
            template=data.get("template", ""),
            timestamp=data.get("timestamp", ""),
            business_goal=data.get("businessGoal") or None,
            input_length=int(data.get("inputLength") or 0),
            output_length=int(data.get("outputLength") or 0),
            usage=usage,
            cost=float(cost) if cost is not None else None,
            model=data.get("model"),
            validation_score=data.get("validationScore"),
            success=data.get("success") is not False,
        )


def decode_record(value: str) -> Dict[str, Any]:
    """Decode a stored JSON value, raising ValueError for non-object payloads."""
    data = json.loads(value)
    if not isinstance(data, dict):
        raise ValueError("Stored record is not a JSON object")
    return data
