"""
d-TPP Feed Client — keeps the chart index on the current FAA chart cycle.

The FAA republishes terminal procedures every 28 days. Cycles are named
YYNN: the two-digit year of the effective date followed by the ordinal of
the cycle within that year (2406 = sixth cycle of 2024, effective 2024-06-13).

Runs as a background thread (same pattern as the other feed clients): loads
the metafile at start, then periodically checks whether a new cycle has
become effective and reloads. A failed fetch or parse keeps the current
snapshot serving and is retried on the next tick.
"""

import os
import logging
import threading
from datetime import date, timedelta
from typing import Optional

import httpx

from data_ingestion.dtpp_metafile import DEFAULT_PDF_BASE_URL
from services.charts_service import ChartsService, charts_service

logger = logging.getLogger(__name__)

CYCLE_DAYS = 28
# Cycle 2401 became effective on 2024-01-25
_REFERENCE_EFFECTIVE = date(2024, 1, 25)


def cycle_effective_date(day: date) -> date:
    """Start date of the chart cycle in effect on the given day."""
    elapsed = (day - _REFERENCE_EFFECTIVE).days // CYCLE_DAYS
    return _REFERENCE_EFFECTIVE + timedelta(days=elapsed * CYCLE_DAYS)


def cycle_for_date(day: date) -> str:
    """Cycle identifier (YYNN) in effect on the given day."""
    effective = cycle_effective_date(day)
    ordinal = (effective.timetuple().tm_yday - 1) // CYCLE_DAYS + 1
    return f"{effective.year % 100:02d}{ordinal:02d}"


def metafile_url(cycle: str, base_url: str = DEFAULT_PDF_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/{cycle}/xml_data/d-tpp_Metafile.xml"


class DtppRefresher:
    """Background refresher for the d-TPP metafile."""

    def __init__(self, service: ChartsService):
        self.service = service
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._loaded_cycle: Optional[str] = None

        self._base_url = os.getenv("DTPP_BASE_URL", DEFAULT_PDF_BASE_URL)
        self._pinned_cycle = os.getenv("DTPP_CYCLE", "").strip()
        self._metafile_path = os.getenv("DTPP_METAFILE_PATH", "").strip()
        self._enabled = os.getenv("DTPP_REFRESH_ENABLED", "true").lower() == "true"
        self._interval = float(os.getenv("DTPP_REFRESH_INTERVAL", "21600"))
        self._retry_interval = float(os.getenv("DTPP_RETRY_INTERVAL", "300"))
        self._timeout = float(os.getenv("DTPP_FETCH_TIMEOUT", "60"))

    @property
    def enabled(self) -> bool:
        return self._enabled

    def current_cycle(self, today: Optional[date] = None) -> str:
        """Cycle to serve: the pinned one if set, else the one in effect."""
        if self._pinned_cycle:
            return self._pinned_cycle
        return cycle_for_date(today or date.today())

    def fetch_metafile(self, cycle: str) -> bytes:
        """Read the metafile from DTPP_METAFILE_PATH or download it from the FAA."""
        if self._metafile_path:
            with open(self._metafile_path, "rb") as f:
                return f.read()

        url = metafile_url(cycle, self._base_url)
        logger.info(f"Downloading d-TPP metafile: {url}")
        resp = httpx.get(url, timeout=self._timeout, follow_redirects=True)
        resp.raise_for_status()
        return resp.content

    def refresh_once(self, today: Optional[date] = None) -> bool:
        """Load the current cycle unless it is already being served.

        Returns True when a new snapshot went live.
        """
        cycle = self.current_cycle(today)
        if cycle == self._loaded_cycle:
            return False

        try:
            document = self.fetch_metafile(cycle)
        except (httpx.HTTPError, OSError) as e:
            logger.warning(f"d-TPP metafile for cycle {cycle} unavailable: {e}")
            return False

        result = self.service.refresh(document)
        if not result.success:
            return False

        self._loaded_cycle = cycle
        return True

    def next_wait(self) -> float:
        """Seconds until the next check; shorter until a first cycle has loaded."""
        if self._loaded_cycle is None:
            return min(self._retry_interval, self._interval)
        return self._interval

    def start(self):
        """Start the refresher thread."""
        if self._running:
            return
        if not self._enabled:
            logger.warning("d-TPP refresh disabled (DTPP_REFRESH_ENABLED=false), chart index stays empty")
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info("d-TPP refresher started")

    def stop(self):
        """Stop the refresher thread."""
        self._running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=10)
        logger.info("d-TPP refresher stopped")

    def _run(self):
        while self._running:
            try:
                self.refresh_once()
            except Exception as e:
                logger.exception(f"d-TPP refresh error: {e}")
            self._stop_event.wait(self.next_wait())


# -- Singleton -----------------------------------------------------------------

_refresher = DtppRefresher(charts_service)


def get_dtpp_refresher() -> DtppRefresher:
    """Get the global d-TPP refresher instance."""
    return _refresher
