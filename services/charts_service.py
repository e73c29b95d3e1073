"""
Charts service: owns the live chart index and answers chart queries.

Readers take whatever snapshot is current when they start and never lock.
Refreshes are serialized; each builds a complete new index before swapping it
in, and a feed that fails to parse leaves the previous snapshot serving.
"""

import logging
import os
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from data_ingestion.dtpp_metafile import DEFAULT_PDF_BASE_URL, FeedParseError, parse_metafile
from models.charts import ChartGroup, ChartRecord, GroupedCharts, IndexStatus, RefreshResult
from services.chart_index import ChartIndex, build

logger = logging.getLogger(__name__)


class EmptyIdentifiersError(ValueError):
    """A chart listing was requested without any airport identifier."""


class ChartsService:
    """Service for chart listing, single-chart search and index refresh."""

    def __init__(self, pdf_base_url: str = DEFAULT_PDF_BASE_URL):
        self.pdf_base_url = pdf_base_url
        self._index = ChartIndex()
        self._refresh_lock = threading.Lock()
        self._last_refresh: Optional[datetime] = None
        self._last_result: Optional[RefreshResult] = None

    @property
    def index(self) -> ChartIndex:
        """The current snapshot."""
        return self._index

    @property
    def loaded(self) -> bool:
        return self._index.cycle is not None

    def get_charts(
        self,
        identifiers: Iterable[str],
        group: Optional[ChartGroup] = None,
    ) -> Dict[str, Union[GroupedCharts, List[ChartRecord]]]:
        """
        List charts for each requested airport.

        Without a group, each airport maps to its non-empty groups; with a
        group, to that group's chart list. Unknown airports map to an empty
        result rather than failing the request.
        """
        requested = [ident.strip() for ident in identifiers if ident and ident.strip()]
        if not requested:
            raise EmptyIdentifiersError("At least one airport identifier is required")

        index = self._index
        results: Dict[str, Union[GroupedCharts, List[ChartRecord]]] = {}

        for ident in requested:
            if ident in results:
                continue
            chart_set = index.lookup(ident)

            if group is not None:
                results[ident] = list(chart_set.charts(group)) if chart_set else []
            elif chart_set is None:
                results[ident] = {}
            else:
                results[ident] = {g: list(chart_set.charts(g)) for g in chart_set.groups()}

        return results

    def get_single_chart(self, identifier: str, search_term: str) -> Optional[ChartRecord]:
        """First chart at an airport whose name contains search_term."""
        return self._index.find_first(identifier, search_term)

    def refresh(self, document: Union[str, bytes]) -> RefreshResult:
        """Ingest a raw metafile and swap in the resulting index."""
        with self._refresh_lock:
            self._last_refresh = datetime.now(timezone.utc)
            try:
                ingested = parse_metafile(document, pdf_base_url=self.pdf_base_url)
            except FeedParseError as e:
                logger.error("Chart refresh failed, keeping cycle %s: %s", self._index.cycle, e)
                result = RefreshResult(success=False, cycle=self._index.cycle, error=str(e))
                self._last_result = result
                return result

            new_index = build(
                ingested.records,
                cycle=ingested.cycle,
                from_date=ingested.from_date,
                to_date=ingested.to_date,
            )
            self._index = new_index

            result = RefreshResult(
                success=True,
                cycle=new_index.cycle,
                record_count=new_index.record_count,
                airport_count=new_index.airport_count,
                skipped=ingested.skipped,
                deleted=ingested.deleted,
            )
            self._last_result = result
            logger.info(
                "Chart index now serving cycle %s (%d charts, %d airports)",
                result.cycle, result.record_count, result.airport_count,
            )
            return result

    def status(self) -> IndexStatus:
        index = self._index
        return IndexStatus(
            loaded=index.cycle is not None,
            cycle=index.cycle,
            from_date=index.from_date or None,
            to_date=index.to_date or None,
            record_count=index.record_count,
            airport_count=index.airport_count,
            last_refresh=self._last_refresh,
            last_result=self._last_result,
        )


# Global singleton
charts_service = ChartsService(pdf_base_url=os.getenv("DTPP_BASE_URL", DEFAULT_PDF_BASE_URL))
