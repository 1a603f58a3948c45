# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Live report updates.

A ReportSubscription listens to a teacher's course change notifications
and keeps a registered callback supplied with fresh report summaries.

Recomputation runs in a single consumer task. A notification only marks
the subscription dirty; the consumer clears the mark, recomputes, delivers
and loops. Any number of notifications arriving while a recomputation is
in flight therefore collapse into exactly one follow-up, and the last
change is never dropped.

Example:
    async def on_summary(summary):
        await push_to_dashboard(summary.to_dict())

    subscription = service.subscribe_to_report_updates("t-1", filters, on_summary)
    ...
    await subscription.aclose()
"""

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable

from coursepulse.domains.reporting.aggregator import CancellationToken
from coursepulse.domains.reporting.errors import ReportCancelledError
from coursepulse.domains.reporting.filters import ReportFilters
from coursepulse.domains.reporting.views import ReportSummary
from coursepulse.infrastructure.store import Unsubscribe

if TYPE_CHECKING:
    from coursepulse.domains.reporting.aggregator import ReportService

logger = logging.getLogger(__name__)


async def _invoke(func: Callable[..., Any], *args: Any) -> None:
    result = func(*args)
    if inspect.isawaitable(result):
        await result


class ReportSubscription:
    """Cancellable handle for live report updates.

    Attributes:
        teacher_id: Teacher whose courses are watched.
        filters: Filters applied to every recomputation.
        recomputations: Number of recomputations started so far.
    """

    def __init__(
        self,
        service: "ReportService",
        teacher_id: str,
        filters: ReportFilters,
        callback: Callable[[ReportSummary], Any],
        on_error: Callable[[Exception], Any] | None = None,
    ) -> None:
        """Initialize the subscription. Call start() to begin listening.

        Args:
            service: Report service used for recomputation.
            teacher_id: Teacher whose courses are watched.
            filters: Filters applied to every recomputation.
            callback: Receives each fresh summary; may be a coroutine function.
            on_error: Receives recomputation and delivery errors.
        """
        self.teacher_id = teacher_id
        self.filters = filters
        self.recomputations = 0
        self._service = service
        self._callback = callback
        self._on_error = on_error
        self._dirty = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._unsubscribe_store: Unsubscribe | None = None
        self._token: CancellationToken | None = None
        self._closed = False

    @property
    def active(self) -> bool:
        return not self._closed

    @property
    def in_flight(self) -> bool:
        return self._token is not None

    def start(self, emit_initial: bool = True) -> None:
        """Register with the store and start the consumer task.

        Args:
            emit_initial: Compute and deliver a summary right away.
        """
        if self._task is not None:
            raise RuntimeError("subscription already started")
        self._loop = asyncio.get_running_loop()
        self._unsubscribe_store = self._service.adapter.subscribe_to_course_changes(
            self.teacher_id,
            self._on_change,
        )
        if emit_initial:
            self._dirty.set()
        self._task = self._loop.create_task(
            self._consume(),
            name=f"report-updates:{self.teacher_id}",
        )
        logger.info("Report subscription started: teacher=%s", self.teacher_id)

    def _on_change(self) -> None:
        if self._closed or self._loop is None:
            return
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        if current is self._loop:
            self._dirty.set()
        else:
            # Store drivers may notify from their own threads.
            self._loop.call_soon_threadsafe(self._dirty.set)

    async def _consume(self) -> None:
        while not self._closed:
            await self._dirty.wait()
            self._dirty.clear()
            if self._closed:
                break

            self._token = CancellationToken()
            self.recomputations += 1
            try:
                summary = await self._service.get_report_summary(
                    self.teacher_id,
                    self.filters,
                    self._token,
                )
            except ReportCancelledError:
                logger.debug("Recomputation cancelled: teacher=%s", self.teacher_id)
                continue
            except Exception as e:
                logger.error(
                    "Report recomputation failed: teacher=%s: %s",
                    self.teacher_id,
                    str(e),
                    exc_info=True,
                )
                await self._report_error(e)
                continue
            finally:
                self._token = None

            if self._closed:
                break
            try:
                await _invoke(self._callback, summary)
            except Exception as e:
                logger.error(
                    "Report update callback failed: teacher=%s: %s",
                    self.teacher_id,
                    str(e),
                    exc_info=True,
                )
                await self._report_error(e)

    async def _report_error(self, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            await _invoke(self._on_error, error)
        except Exception:
            logger.exception("Report error handler failed: teacher=%s", self.teacher_id)

    def unsubscribe(self) -> None:
        """Stop listening and cancel any in-flight recomputation."""
        if self._closed:
            return
        self._closed = True
        if self._unsubscribe_store is not None:
            self._unsubscribe_store()
            self._unsubscribe_store = None
        if self._token is not None:
            self._token.cancel()
        if self._task is not None:
            self._task.cancel()
        logger.info("Report subscription stopped: teacher=%s", self.teacher_id)

    async def aclose(self) -> None:
        """Unsubscribe and wait for the consumer task to finish."""
        self.unsubscribe()
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "ReportSubscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
