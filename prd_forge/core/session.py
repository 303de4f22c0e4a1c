"""
Per-installation session context.

Owns the stable session id and the Notion credentials, both kept in a
local key/value store that is injected at construction.
"""

import random
import string
import time
from dataclasses import dataclass
from typing import Optional

from prd_forge.storage.repository import KeyValueStore

SESSION_ID_KEY = "sessionId"
NOTION_TOKEN_KEY = "notion_integration_token"
NOTION_DATABASE_KEY = "notion_database_id"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """Create an id such as "gen_1700000000000_k3j9x0a1b"."""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{millis}_{suffix}"


@dataclass(frozen=True)
class NotionCredentials:
    """Integration token and target database for Notion exports."""
    token: Optional[str]
    database_id: Optional[str]

    @property
    def is_complete(self) -> bool:
        return bool(self.token) and bool(self.database_id)


class SessionContext:
    """Local state of one installation: session id and Notion credentials."""

    def __init__(self, local_store: KeyValueStore):
        self.local_store = local_store

    @property
    def session_id(self) -> str:
        """Return the stable session id, creating and persisting it once."""
        stored = self.local_store.get(SESSION_ID_KEY)
        if stored is not None and stored.value:
            return stored.value
        session_id = generate_id("session")
        self.local_store.set(SESSION_ID_KEY, session_id)
        return session_id

    def get_notion_credentials(self) -> NotionCredentials:
        token = self.local_store.get(NOTION_TOKEN_KEY)
        database_id = self.local_store.get(NOTION_DATABASE_KEY)
        return NotionCredentials(
            token=token.value if token else None,
            database_id=database_id.value if database_id else None
        )

    def save_notion_credentials(self, token: str, database_id: str) -> None:
        self.local_store.set(NOTION_TOKEN_KEY, token)
        self.local_store.set(NOTION_DATABASE_KEY, database_id)

    def clear_notion_credentials(self) -> None:
        self.local_store.delete(NOTION_TOKEN_KEY)
        self.local_store.delete(NOTION_DATABASE_KEY)
