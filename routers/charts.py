"""
Charts API router.

Lists FAA terminal procedure charts (d-TPP) by airport and redirects to a
single chart's PDF by name search. PDFs are linked, never re-hosted.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Path, Query, status
from fastapi.responses import RedirectResponse

from models.charts import ChartGroup, IndexStatus, InvalidChartGroupError
from services.charts_service import EmptyIdentifiersError, charts_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/charts",
    tags=["Charts"],
)


@router.get(
    "",
    summary="List charts for one or more airports",
    description=(
        "Returns chart PDF links for each requested airport, keyed by the identifier "
        "as requested. FAA (JFK) and ICAO (KJFK) identifiers are both accepted.\n\n"
        "Without `group`, charts are organized by group. With `group`, each airport "
        "maps to that group's chart list. Unknown airports map to an empty result."
    ),
    responses={
        200: {
            "content": {
                "application/json": {
                    "example": {
                        "JFK": {
                            "Approaches": [{
                                "state": "NY",
                                "state_full": "New York",
                                "city": "NEW YORK",
                                "volume": "NE-2",
                                "airport_name": "JOHN F KENNEDY INTL",
                                "military": "N",
                                "faa_ident": "JFK",
                                "icao_ident": "KJFK",
                                "chart_seq": "50750",
                                "chart_code": "IAP",
                                "chart_name": "ILS OR LOC RWY 04L",
                                "pdf_name": "00610IL4L.PDF",
                                "pdf_path": "https://aeronav.faa.gov/d-tpp/2406/00610IL4L.PDF",
                                "chart_group": "Approaches",
                            }],
                        },
                        "ZZZZ": {},
                    }
                }
            }
        },
        400: {"description": "No airport given, or unknown chart group"},
    },
)
async def get_charts(
    apt: str = Query(
        ...,
        description="Comma-separated airport identifiers (e.g. JFK,KLAX)",
    ),
    group: Optional[str] = Query(
        None,
        description="Chart group filter: General, Departures, Arrivals, Approaches, APD or Other",
    ),
):
    """List charts for the requested airports."""
    try:
        chart_group = ChartGroup.parse(group) if group is not None else None
        return charts_service.get_charts(apt.split(","), group=chart_group)
    except (EmptyIdentifiersError, InvalidChartGroupError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get(
    "/info",
    response_model=IndexStatus,
    summary="Chart cycle and index status",
    description="Reports which d-TPP cycle is being served and the outcome of the last refresh.",
)
async def get_index_status():
    return charts_service.status()


@router.get(
    "/{apt}/{search:path}",
    summary="Redirect to a single chart",
    description=(
        "Redirects to the PDF of the first chart at the airport whose name contains "
        "`search` (case-insensitive). Charts are searched in group order "
        "(General, Departures, Arrivals, Approaches, APD, Other) and feed order "
        "within each group."
    ),
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
    responses={
        302: {"description": "Redirect to the chart PDF"},
        404: {"description": "No matching chart at this airport"},
    },
)
async def get_single_chart(
    apt: str = Path(..., description="FAA or ICAO airport identifier"),
    search: str = Path(..., description="Chart name search term (e.g. ILS 04L)"),
):
    """Redirect to the best matching chart PDF."""
    chart = charts_service.get_single_chart(apt, search)
    if chart is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No chart matching '{search}' found for {apt.upper().strip()}",
        )

    logger.debug("Redirecting %s/%s to %s", apt, search, chart.pdf_path)
    return RedirectResponse(chart.pdf_path, status_code=status.HTTP_302_FOUND)
