# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-process change notification bus for CoursePulse.

Record stores publish change events here and report subscriptions listen
for them. Topics are dotted strings; subscribers may use exact topics or
wildcard patterns.

The ChangeBus supports:
- Exact topic matching (e.g., "course.changed")
- Wildcard pattern matching (e.g., "course.*")
- Multiple handlers per topic

Example:
    from coursepulse.infrastructure.events import ChangeBus, ChangeTopics

    bus = ChangeBus()

    def on_course_changed(event):
        print(event.payload["course_id"])

    unsubscribe = bus.subscribe(ChangeTopics.COURSE_CHANGED, on_course_changed)
    bus.publish(ChangeTopics.COURSE_CHANGED, {"teacher_id": "t-1", "course_id": "c-1"})
    unsubscribe()
"""

import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

logger = logging.getLogger(__name__)


class ChangeTopics:
    """Topic names published by record stores."""

    COURSE_CHANGED = "course.changed"
    STUDENT_CHANGED = "course.student.changed"
    ASSIGNMENT_CHANGED = "course.assignment.changed"
    SUBMISSION_CHANGED = "course.submission.changed"

    ALL_COURSE = "course.*"


@dataclass
class ChangeEvent:
    """Container for a change notification.

    Attributes:
        topic: The topic string.
        payload: Identifiers of the changed records.
        event_id: Unique event identifier.
        timestamp: When the event was published.
    """

    topic: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


ChangeHandler = Callable[[ChangeEvent], None]


class ChangeBus:
    """Synchronous publish/subscribe bus with wildcard topics.

    Handlers run on the publisher's thread in subscription order. A
    failing handler is logged and does not stop the remaining handlers.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[ChangeHandler]] = {}
        self._pattern_handlers: dict[str, list[ChangeHandler]] = {}
        self._event_count = 0

    @staticmethod
    def _is_pattern(topic: str) -> bool:
        return "*" in topic or "?" in topic

    def subscribe(self, topic: str, handler: ChangeHandler) -> Callable[[], bool]:
        """Subscribe a handler to a topic or pattern.

        Args:
            topic: Topic string or pattern with wildcards.
            handler: Callable invoked with each matching ChangeEvent.

        Returns:
            Callable that unsubscribes the handler.
        """
        registry = self._pattern_handlers if self._is_pattern(topic) else self._handlers
        registry.setdefault(topic, []).append(handler)
        logger.debug("Subscribed handler to: %s", topic)
        return lambda: self.unsubscribe(topic, handler)

    def unsubscribe(self, topic: str, handler: ChangeHandler) -> bool:
        """Unsubscribe a handler from a topic or pattern.

        Returns:
            True if handler was found and removed, False otherwise.
        """
        registry = self._pattern_handlers if self._is_pattern(topic) else self._handlers
        handlers = registry.get(topic)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del registry[topic]
        return True

    def publish(self, topic: str, payload: dict[str, Any]) -> ChangeEvent:
        """Publish an event to all matching subscribers.

        Args:
            topic: The topic string.
            payload: Event data dictionary.

        Returns:
            The published ChangeEvent.
        """
        event = ChangeEvent(topic=topic, payload=payload)
        self._event_count += 1

        handlers = list(self._handlers.get(topic, []))
        for pattern, pattern_handlers in self._pattern_handlers.items():
            if fnmatch.fnmatch(topic, pattern):
                handlers.extend(pattern_handlers)

        if not handlers:
            logger.debug("No handlers for topic: %s", topic)
            return event

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    "Handler error for topic %s: %s",
                    topic,
                    str(e),
                    exc_info=True,
                )

        return event

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()
        self._pattern_handlers.clear()

    def get_stats(self) -> dict[str, Any]:
        """Get bus statistics.

        Returns:
            Dictionary with subscription and event counts.
        """
        exact_count = sum(len(h) for h in self._handlers.values())
        pattern_count = sum(len(h) for h in self._pattern_handlers.values())

        return {
            "total_handlers": exact_count + pattern_count,
            "events_published": self._event_count,
            "topics": list(self._handlers.keys()),
            "patterns": list(self._pattern_handlers.keys()),
        }
