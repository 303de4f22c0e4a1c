# prd_forge/demo/seed_demo_data.py

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from prd_forge.storage.models import GenerationRecord, SessionRecord
from prd_forge.storage.repository import KeyValueStore

DEMO_SESSIONS = 15
DEMO_GENERATIONS = 47

REFERRERS = ["linkedin.com", "twitter.com", "direct", "google.com"]
TEMPLATES = ["scrum", "jtbd", "simple"]
GOALS = ["revenue", "engagement", "delight", "enterprise"]


def seed_demo_data(
    store: KeyValueStore,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None
) -> int:
    """Write demo sessions and generations spread over the last 7 days.

    Returns:
        Number of records written
    """
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    week = timedelta(days=7)

    for i in range(DEMO_SESSIONS):
        record = SessionRecord(
            session_id=f"demo_session_{i}",
            timestamp=(now - rng.random() * week).isoformat(),
            referrer=rng.choice(REFERRERS),
            user_agent="Chrome/Mac",
            location="Demo Location"
        )
        store.set(f"session:demo_{i}", record.to_json())

    for i in range(DEMO_GENERATIONS):
        record = GenerationRecord(
            id=f"demo_gen_{i}",
            session_id=f"demo_session_{rng.randrange(DEMO_SESSIONS)}",
            type="user_story" if rng.random() > 0.4 else "prd",
            template=rng.choice(TEMPLATES),
            timestamp=(now - rng.random() * week).isoformat(),
            business_goal=rng.choice(GOALS),
            input_length=rng.randrange(100, 600),
            output_length=rng.randrange(300, 1800),
            success=rng.random() > 0.05
        )
        store.set(f"generation:demo_{i}", record.to_json())

    return DEMO_SESSIONS + DEMO_GENERATIONS


if __name__ == "__main__":
    from prd_forge.storage.repository import get_store

    written = seed_demo_data(get_store())
    print(f"Demo analytics data inserted ({written} records)")
