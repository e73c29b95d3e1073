from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class InvalidChartGroupError(ValueError):
    """Raised when a group filter is not one of the ChartGroup values."""


class ChartGroup(str, Enum):
    # Declaration order is the scan order used by single-chart search
    GENERAL = "General"        # Takeoff/alternate minimums, hot spots, LAHSO
    DEPARTURES = "Departures"  # DPs and obstacle departures
    ARRIVALS = "Arrivals"      # STARs
    APPROACHES = "Approaches"  # Instrument approach procedures
    APD = "APD"                # Airport diagrams
    OTHER = "Other"            # Feed codes not in CHART_CODE_GROUPS

    @classmethod
    def parse(cls, value: str) -> "ChartGroup":
        """Parse a group filter value, ignoring case."""
        wanted = value.strip().lower()
        for group in cls:
            if group.value.lower() == wanted:
                return group
        valid = ", ".join(group.value for group in cls)
        raise InvalidChartGroupError(f"Unknown chart group '{value}'. Valid groups: {valid}")


# d-TPP chart_code -> group
CHART_CODE_GROUPS: Dict[str, ChartGroup] = {
    "MIN": ChartGroup.GENERAL,
    "HOT": ChartGroup.GENERAL,
    "LAH": ChartGroup.GENERAL,
    "DP": ChartGroup.DEPARTURES,
    "ODP": ChartGroup.DEPARTURES,
    "DAU": ChartGroup.DEPARTURES,
    "STAR": ChartGroup.ARRIVALS,
    "IAP": ChartGroup.APPROACHES,
    "APD": ChartGroup.APD,
}


def group_for_chart_code(chart_code: str) -> ChartGroup:
    """Map a feed chart_code onto its group; unknown codes land in OTHER."""
    return CHART_CODE_GROUPS.get(chart_code.strip().upper(), ChartGroup.OTHER)


class ChartRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: str = Field("", description="State code (e.g. NY)")
    state_full: str = Field("", description="State full name")
    city: str = Field("", description="City name")
    volume: str = Field("", description="d-TPP volume (e.g. NE-2)")
    airport_name: str = Field("", description="Airport name")
    military: str = Field("", description="Military flag from the feed (Y/N)")
    faa_ident: str = Field("", description="FAA location identifier (e.g. JFK)")
    icao_ident: str = Field("", description="ICAO code, empty when none is assigned")
    chart_seq: str = Field("", description="Chart sequence number")
    chart_code: str = Field("", description="d-TPP chart code (IAP, DP, STAR, APD, ...)")
    chart_name: str = Field(..., min_length=1, description="Chart name")
    pdf_name: str = Field("", description="PDF file name")
    pdf_path: str = Field(..., min_length=1, description="Absolute URL of the FAA-hosted PDF")
    chart_group: ChartGroup = Field(..., description="Chart group")

    @property
    def airport_identifiers(self) -> Tuple[str, ...]:
        """Identifiers the chart is published under, LID first."""
        idents = []
        for ident in (self.faa_ident, self.icao_ident):
            ident = ident.strip().upper()
            if ident and ident not in idents:
                idents.append(ident)
        return tuple(idents)


class RefreshResult(BaseModel):
    success: bool = Field(..., description="Whether the new snapshot went live")
    cycle: Optional[str] = Field(None, description="d-TPP cycle of the feed")
    record_count: int = Field(0, description="Charts ingested")
    airport_count: int = Field(0, description="Airports indexed")
    skipped: int = Field(0, description="Malformed records skipped")
    deleted: int = Field(0, description="Records marked deleted in this cycle")
    error: Optional[str] = Field(None, description="Failure diagnostic")


class IndexStatus(BaseModel):
    loaded: bool = Field(..., description="Whether a chart snapshot is live")
    cycle: Optional[str] = Field(None, description="d-TPP cycle being served")
    from_date: Optional[str] = Field(None, description="Cycle start, as published")
    to_date: Optional[str] = Field(None, description="Cycle end, as published")
    record_count: int = Field(0, description="Charts in the live snapshot")
    airport_count: int = Field(0, description="Airports in the live snapshot")
    last_refresh: Optional[datetime] = Field(None, description="Time of the last refresh attempt")
    last_result: Optional[RefreshResult] = Field(None, description="Outcome of the last refresh attempt")


GroupedCharts = Dict[ChartGroup, List[ChartRecord]]
