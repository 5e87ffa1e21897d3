import logging
import queue
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProgressEvent:
    percent: float | None
    message: str
    timestamp: datetime


class ProgressChannel:
    """Per-job mailbox between a collaborator and the runner.

    Collaborators call the channel from the worker thread; only the runner
    drains it and writes to the record store. Reports after ``close()`` are
    dropped, and ``report`` never raises into the collaborator.
    """

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self._events: queue.SimpleQueue[ProgressEvent] = queue.SimpleQueue()
        self._closed = threading.Event()

    def report(self, percent: float | None, message: str = "") -> None:
        if self._closed.is_set():
            logger.debug("progress_after_close", extra={"job_id": self.job_id})
            return
        try:
            value = float(percent) if percent is not None else None
        except (TypeError, ValueError):
            value = None
        self._events.put(ProgressEvent(value, str(message or ""), datetime.now(timezone.utc)))

    __call__ = report

    def drain(self) -> list[ProgressEvent]:
        events: list[ProgressEvent] = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except queue.Empty:
                return events

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()
