"""
In-memory chart index for one d-TPP cycle.

The index maps every identifier variant of an airport (LID, ICAO, derived
K-prefix alias) to one shared AirportChartSet. It is built once per refresh
and never mutated afterwards, so any number of readers can use a snapshot
while a replacement is being built.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from models.charts import ChartGroup, ChartRecord
from services.identifiers import icao_alias, lookup_keys, normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AirportChartSet:
    """Charts for one airport, grouped, in feed order within each group."""
    identifier: str
    identifiers: Tuple[str, ...]
    charts_by_group: Mapping[ChartGroup, Tuple[ChartRecord, ...]]
    icao_codes: Tuple[str, ...] = ()

    def answers_to_icao(self, icao: str) -> bool:
        """Whether a K-prefixed code may reach this airport through its LID.

        Airports the feed files under a different ICAO code (PANC, TJSJ) do not.
        """
        return not self.icao_codes or icao in self.icao_codes

    def charts(self, group: ChartGroup) -> Tuple[ChartRecord, ...]:
        return self.charts_by_group.get(group, ())

    def groups(self) -> List[ChartGroup]:
        """Groups with at least one chart, in ChartGroup order."""
        return [group for group in ChartGroup if self.charts_by_group.get(group)]

    def iter_charts(self) -> Iterable[ChartRecord]:
        """All charts in search scan order: group order, then feed order."""
        for group in ChartGroup:
            yield from self.charts_by_group.get(group, ())

    @property
    def chart_count(self) -> int:
        return sum(len(charts) for charts in self.charts_by_group.values())


@dataclass(frozen=True)
class ChartIndex:
    by_identifier: Mapping[str, AirportChartSet] = field(default_factory=lambda: MappingProxyType({}))
    cycle: Optional[str] = None
    from_date: str = ""
    to_date: str = ""
    record_count: int = 0

    @property
    def airport_count(self) -> int:
        return len({id(chart_set) for chart_set in self.by_identifier.values()})

    def lookup(self, identifier: str) -> Optional[AirportChartSet]:
        """Find an airport by LID or ICAO code; None when unknown."""
        canonical, *aliases = lookup_keys(identifier)
        chart_set = self.by_identifier.get(canonical)
        if chart_set is not None:
            return chart_set

        for alias in aliases:
            chart_set = self.by_identifier.get(alias)
            if chart_set is not None and chart_set.answers_to_icao(canonical):
                return chart_set
        return None

    def find_first(self, identifier: str, term: str) -> Optional[ChartRecord]:
        """First chart at the airport whose name contains term, ignoring case.

        Groups are scanned in ChartGroup order and charts in feed order, so the
        answer is stable for a given feed. An empty term matches the first chart.
        """
        chart_set = self.lookup(identifier)
        if chart_set is None:
            return None

        needle = term.lower()
        for chart in chart_set.iter_charts():
            if needle in chart.chart_name.lower():
                return chart
        return None


class _AirportBuilder:
    """Mutable accumulator used while building; frozen into AirportChartSet."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        self.identifiers: List[str] = [identifier]
        self.charts_by_group: Dict[ChartGroup, List[ChartRecord]] = {}
        self.icao_codes: List[str] = []

    def add(self, record: ChartRecord) -> None:
        self.charts_by_group.setdefault(record.chart_group, []).append(record)
        icao = normalize(record.icao_ident)
        if icao and icao not in self.icao_codes:
            self.icao_codes.append(icao)

    def freeze(self) -> AirportChartSet:
        return AirportChartSet(
            identifier=self.identifier,
            identifiers=tuple(self.identifiers),
            charts_by_group=MappingProxyType({
                group: tuple(self.charts_by_group[group])
                for group in ChartGroup
                if group in self.charts_by_group
            }),
            icao_codes=tuple(self.icao_codes),
        )


def build(
    records: Iterable[ChartRecord],
    cycle: Optional[str] = None,
    from_date: str = "",
    to_date: str = "",
) -> ChartIndex:
    """Build a ChartIndex from chart records. Pure: same input, same index."""
    builders: Dict[str, _AirportBuilder] = {}
    record_count = 0

    for record in records:
        keys = [normalize(ident) for ident in record.airport_identifiers]
        keys = [key for key in dict.fromkeys(keys) if key]
        if not keys:
            continue

        targets: List[_AirportBuilder] = []
        unclaimed: List[str] = []
        for key in keys:
            builder = builders.get(key)
            if builder is None:
                unclaimed.append(key)
            elif not any(builder is target for target in targets):
                targets.append(builder)

        if unclaimed:
            # New identifiers join the airport already known under a sibling key
            owner = targets[0] if targets else _AirportBuilder(unclaimed[0])
            for key in unclaimed:
                builders[key] = owner
                if key not in owner.identifiers:
                    owner.identifiers.append(key)
            if not targets:
                targets.append(owner)

        for target in targets:
            target.add(record)
        record_count += 1

    # K-prefixed ICAO codes also answer to the bare LID unless the feed
    # already files another airport under it
    for key, builder in list(builders.items()):
        alias = icao_alias(key)
        if alias and alias not in builders and (not builder.icao_codes or key in builder.icao_codes):
            builders[alias] = builder
            builder.identifiers.append(alias)

    frozen: Dict[int, AirportChartSet] = {}
    by_identifier: Dict[str, AirportChartSet] = {}
    for key, builder in builders.items():
        chart_set = frozen.get(id(builder))
        if chart_set is None:
            chart_set = frozen[id(builder)] = builder.freeze()
        by_identifier[key] = chart_set

    logger.debug("Built chart index: %d charts across %d airports", record_count, len(frozen))
    return ChartIndex(
        by_identifier=MappingProxyType(by_identifier),
        cycle=cycle,
        from_date=from_date,
        to_date=to_date,
        record_count=record_count,
    )
