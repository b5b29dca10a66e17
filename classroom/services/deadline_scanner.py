import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from classroom.core.config.settings import Settings
from classroom.core.errors import DeliveryError, Timeout
from classroom.crud.submissions import get_upcoming_deadlines
from classroom.schemas.assignment import UpcomingDeadline
from classroom.services.email import create_deadline_reminder
from classroom.utils.helpers import as_naive_utc, utc_now

logger = logging.getLogger(__name__)


class DeadlineScanner:
    """
    Periodically reminds students of pending work that is due soon.

    Every `interval_seconds` the scanner looks for PENDING mappings whose
    deadline lies in [now + lookahead - window, now + lookahead] and sends
    one reminder per student. With the window equal to the interval each
    deadline is normally picked up by exactly one tick; a restart or a late
    tick can miss or repeat a reminder near the window edges.

    The scanner only reads. It opens its own session per tick from
    `session_factory`.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        notifier,
        interval_seconds: float = 60,
        lookahead: timedelta = timedelta(minutes=60),
        window: timedelta = timedelta(seconds=60),
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self.lookahead = lookahead
        self.window = window
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: Settings, session_factory: Callable[[], Session], notifier) -> "DeadlineScanner":
        return cls(
            session_factory,
            notifier,
            interval_seconds=settings.REMINDER_INTERVAL_SECONDS,
            lookahead=timedelta(minutes=settings.REMINDER_LOOKAHEAD_MINUTES),
            window=timedelta(seconds=settings.REMINDER_WINDOW_SECONDS),
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def fetch_upcoming(self, now: datetime) -> List[UpcomingDeadline]:
        window_end = now + self.lookahead
        window_start = window_end - self.window
        with self.session_factory() as db:
            return get_upcoming_deadlines(window_start, window_end, db)

    def tick(self, now: Optional[datetime] = None) -> int:
        """Run one scan; returns the number of reminders delivered."""
        now = as_naive_utc(now) or utc_now()
        upcoming = self.fetch_upcoming(now)
        if not upcoming:
            logger.debug("No upcoming assignment deadlines")
            return 0

        sent = 0
        for reminder in upcoming:
            subject, body = create_deadline_reminder(reminder.assignment_title, reminder.deadline)
            try:
                self.notifier.send(reminder.student_email, subject, body)
            except (DeliveryError, Timeout) as e:
                logger.error(f"Failed to send notification to {reminder.student_email}: {e.message}")
                continue
            except Exception:
                logger.exception(f"Unexpected error notifying {reminder.student_email}")
                continue
            sent += 1
            logger.info(
                f"Notification sent to {reminder.student_email} "
                f"for assignment {reminder.assignment_title}"
            )
        return sent

    async def _run(self):
        # tick starts stay on a fixed grid of interval_seconds, however long a tick takes
        loop = asyncio.get_running_loop()
        next_run = loop.time()
        while True:
            next_run += self.interval_seconds
            await asyncio.sleep(max(0, next_run - loop.time()))
            try:
                await run_in_threadpool(self.tick)
            except Exception:
                logger.exception("Deadline scan failed")

    def start(self) -> None:
        """Schedule the scanner on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Deadline scanner started, every {self.interval_seconds}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Deadline scanner stopped")
