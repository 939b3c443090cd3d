"""Periodic refresh of all tracked repositories"""

from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Event, Lock, Thread
from typing import Dict, Iterable, List, Optional

from git_peek.config import Settings
from git_peek.logging_config import get_logger
from git_peek.models.repository import Repository
from git_peek.models.status import RepositoryStatus
from git_peek.services.notifier import NullNotifier, Notifier
from git_peek.services.repository_store import RepositoryStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """A repository gained changed files between two refreshes."""

    repository_id: str
    name: str
    old_total: int
    new_total: int

    @property
    def delta(self) -> int:
        return self.new_total - self.old_total

    @property
    def title(self) -> str:
        return self.name

    @property
    def body(self) -> str:
        noun = "change" if self.delta == 1 else "changes"
        return f"{self.delta} new {noun} ({self.new_total} changed files)"


def detect_changes(
    before: Dict[str, Optional[RepositoryStatus]],
    repositories: Iterable[Repository],
) -> List[ChangeEvent]:
    """Compare statuses before and after a refresh.

    A repository produces an event when its changed-file count went up, or
    when it went from clean to dirty. Repositories that had no status before
    (never refreshed, or just added) produce nothing.

    Args:
        before: Status per repository id taken before the refresh
        repositories: Repositories after the refresh

    Returns:
        One event per repository that gained changes
    """
    events = []
    for repository in repositories:
        old_status = before.get(repository.id)
        new_status = repository.git_status
        if old_status is None or new_status is None:
            continue

        old_total = old_status.total_changed_files
        new_total = new_status.total_changed_files
        if new_total > old_total or (old_status.is_clean and not new_status.is_clean):
            events.append(ChangeEvent(repository.id, repository.name, old_total, new_total))
    return events


class GitMonitor:
    """Refreshes the store on a timer and reports new changes.

    ``start`` runs one local-only refresh immediately and then one per
    interval on a background thread. ``force_update`` runs a refresh that also
    fetches from remotes. Refresh cycles never overlap.
    """

    def __init__(
        self,
        store: RepositoryStore,
        interval: Optional[float] = None,
        settings: Optional[Settings] = None,
        notifier: Optional[Notifier] = None,
    ):
        """Initialize the monitor.

        Args:
            store: Repositories to refresh
            interval: Seconds between refreshes (default: settings.refresh_interval)
            settings: User settings, read once here
            notifier: Where change notifications go
        """
        self.store = store
        self.settings = settings or Settings()
        self.interval = self.settings.refresh_interval if interval is None else interval
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        self.notifications_enabled = self.settings.show_notifications
        self.notifier = notifier or NullNotifier()

        self.last_update_time: Optional[datetime] = None
        self._is_monitoring = False
        self._state_lock = Lock()
        self._cycle_lock = Lock()  # One refresh cycle at a time
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    @property
    def is_monitoring(self) -> bool:
        return self._is_monitoring

    def start(self) -> None:
        """Start periodic refreshes. Does nothing when already running."""
        with self._state_lock:
            if self._is_monitoring:
                return
            self._is_monitoring = True
            self._stop_event = Event()
            self._thread = Thread(
                target=self._run,
                args=(self._stop_event,),
                name="git-peek-monitor",
                daemon=True,
            )
            self._thread.start()
        logger.info(f"Monitoring started (every {self.interval:g}s)")

    def stop(self) -> None:
        """Stop scheduling refreshes. A cycle already running is left to finish."""
        with self._state_lock:
            if not self._is_monitoring:
                return
            self._is_monitoring = False
            self._stop_event.set()
            self._thread = None
        logger.info("Monitoring stopped")

    def force_update(self) -> List[ChangeEvent]:
        """Refresh everything now, including a fetch from the remotes."""
        return self._update_all(should_fetch=True)

    def _run(self, stop_event: Event) -> None:
        self._update_all(should_fetch=False)
        while not stop_event.wait(self.interval):
            self._update_all(should_fetch=False)

    def _update_all(self, should_fetch: bool) -> List[ChangeEvent]:
        with self._cycle_lock:
            before = {r.id: r.git_status for r in self.store.list_repositories()}

            try:
                self.store.update_all(should_fetch=should_fetch)
            except Exception as e:
                # Keep the timer thread alive whatever happens
                logger.error(f"Refresh cycle failed: {e}", exc_info=True)
                return []

            events = detect_changes(before, self.store.list_repositories())
            for event in events:
                logger.info(f"{event.name}: {event.body}")
                if self.notifications_enabled:
                    self._notify(event)

            self.last_update_time = datetime.now(timezone.utc)
            self.store.save()
            return events

    def _notify(self, event: ChangeEvent) -> None:
        try:
            self.notifier.notify(event.title, event.body)
        except Exception as e:
            logger.warning(f"Notification for {event.name} failed: {e}")
