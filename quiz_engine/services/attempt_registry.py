"""In-process registry: exactly one controller per attempt id.

Completed attempts are kept for a grace period so they can still be viewed
and reviewed, then dropped the next time the registry is pruned.
"""

import logging
from datetime import datetime, timedelta, timezone

from quiz_engine.config import settings
from quiz_engine.core.errors import AttemptNotFound
from quiz_engine.schemas.attempt import AttemptStatus
from quiz_engine.services.attempt_controller import AttemptController

logger = logging.getLogger(__name__)


class AttemptRegistry:
    def __init__(self, completed_ttl: timedelta | None = None) -> None:
        self._controllers: dict[str, AttemptController] = {}
        if completed_ttl is None:
            completed_ttl = timedelta(seconds=settings.COMPLETED_ATTEMPT_TTL_SECONDS)
        self.completed_ttl = completed_ttl

    def add(self, controller: AttemptController) -> None:
        attempt_id = controller.attempt_id
        if attempt_id is None:
            raise ValueError("Only started attempts can be registered")
        self.prune()
        if attempt_id in self._controllers:
            raise ValueError(f"Attempt {attempt_id} already has a controller")
        self._controllers[attempt_id] = controller
        logger.debug("Registered controller for attempt %s", attempt_id)

    def get(self, attempt_id: str) -> AttemptController:
        try:
            return self._controllers[attempt_id]
        except KeyError:
            raise AttemptNotFound(attempt_id) from None

    def remove(self, attempt_id: str) -> None:
        self._controllers.pop(attempt_id, None)

    def prune(self, now: datetime | None = None) -> int:
        """Drop completed attempts older than ``completed_ttl``; returns how many."""
        now = now or datetime.now(timezone.utc)
        expired = [
            attempt_id
            for attempt_id, c in self._controllers.items()
            if c.session.status == AttemptStatus.COMPLETED
            and c.session.completed_at is not None
            and now - c.session.completed_at >= self.completed_ttl
        ]
        for attempt_id in expired:
            self.remove(attempt_id)
        if expired:
            logger.info("Dropped %d expired attempt controller(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._controllers)


# ── singleton accessor ────────────────────────────────────────────────────────

_instance: AttemptRegistry | None = None


def get_attempt_registry() -> AttemptRegistry:
    global _instance
    if _instance is None:
        _instance = AttemptRegistry()
    return _instance
