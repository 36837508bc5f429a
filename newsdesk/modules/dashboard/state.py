"""
Dashboard State
===============

Tracks the dashboard's snapshot across date range changes. Every fetch is
tagged with a generation number; only the newest generation may settle the
state, so a slow response for an old range never overwrites a newer one.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Optional

from ...core.errors import BackendError
from .stats import DashboardStats, DateRange

logger = logging.getLogger(__name__)

LOAD_ERROR = 'Failed to load statistics'


@dataclass(frozen=True)
class DashboardState:
    loading: bool = False
    error: Optional[str] = None
    stats: Optional[DashboardStats] = None
    date_range: Optional[DateRange] = None
    preset: str = 'this-week'
    generation: int = 0

    def to_dict(self):
        return {
            'loading': self.loading,
            'error': self.error,
            'stats': self.stats.to_dict() if self.stats else None,
            'date_range': {
                'start_date': self.date_range.start_date.isoformat(),
                'end_date': self.date_range.end_date.isoformat(),
            } if self.date_range else None,
            'preset': self.preset,
            'generation': self.generation,
        }


class DashboardController:
    """
    Owns one DashboardState

    Args:
        fetch: callable taking a DateRange and returning DashboardStats
    """

    def __init__(self, fetch: Callable[[DateRange], DashboardStats]):
        self.fetch = fetch
        self.state = DashboardState()
        self._lock = threading.Lock()

    def begin(self, date_range: DateRange, preset: str = 'custom') -> int:
        """Start a fetch for ``date_range``; returns its generation ticket"""
        with self._lock:
            ticket = self.state.generation + 1
            self.state = replace(self.state, loading=True, error=None, date_range=date_range,
                                 preset=preset, generation=ticket)
            return ticket

    def complete(self, ticket: int, stats: DashboardStats) -> bool:
        """Apply a finished fetch; False when a newer one has started since"""
        with self._lock:
            if ticket != self.state.generation:
                logger.debug(f"Dropping stale dashboard result (generation {ticket})")
                return False
            self.state = replace(self.state, loading=False, error=None, stats=stats)
            return True

    def fail(self, ticket: int, message: str = LOAD_ERROR) -> bool:
        """Record a failed fetch; the previous snapshot is discarded"""
        with self._lock:
            if ticket != self.state.generation:
                return False
            self.state = replace(self.state, loading=False, error=message, stats=None)
            return True

    def settle(self, ticket: int, date_range: DateRange) -> DashboardState:
        """Run the fetch for ``ticket``; the result is dropped if a newer fetch began"""
        try:
            stats = self.fetch(date_range)
        except BackendError as e:
            logger.error(f"Dashboard stats fetch failed: {e}")
            self.fail(ticket)
        else:
            self.complete(ticket, stats)
        return self.state

    def load(self, date_range: DateRange, preset: str = 'custom') -> DashboardState:
        """Fetch and settle stats for ``date_range``"""
        return self.settle(self.begin(date_range, preset), date_range)

    def change_range(self, date_range: DateRange, preset: str = 'custom') -> DashboardState:
        return self.load(date_range, preset)


class ControllerRegistry:
    """
    One DashboardController per signed-in user

    Concurrent stats requests from the same user share a controller, so a
    slow request for an old range cannot settle after a newer one began.

    Args:
        fetch: callable taking a DateRange and returning DashboardStats
    """

    def __init__(self, fetch: Callable[[DateRange], DashboardStats]):
        self.fetch = fetch
        self._controllers = {}
        self._lock = threading.Lock()

    def for_user(self, user_id) -> DashboardController:
        with self._lock:
            controller = self._controllers.get(user_id)
            if controller is None:
                controller = self._controllers[user_id] = DashboardController(self.fetch)
            return controller

    def discard(self, user_id):
        with self._lock:
            self._controllers.pop(user_id, None)
