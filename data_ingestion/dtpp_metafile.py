"""
Parse the FAA d-TPP (Digital Terminal Procedures Publication) metafile.

Source: https://aeronav.faa.gov/d-tpp/<cycle>/xml_data/d-tpp_Metafile.xml
One XML document per 28-day cycle listing every terminal procedure chart:

    digital_tpp @cycle @from_edate @to_edate
      state_code @ID @state_fullname
        city_name @ID @volume
          airport_name @ID @military @apt_ident @icao_ident
            record  chartseq, chart_code, chart_name, useraction, pdf_name, ...
"""

import logging
from dataclasses import dataclass, field
from typing import List, Union
from xml.etree import ElementTree

from models.charts import ChartRecord, group_for_chart_code

logger = logging.getLogger(__name__)

DEFAULT_PDF_BASE_URL = "https://aeronav.faa.gov/d-tpp"

ROOT_TAG = "digital_tpp"


class FeedParseError(ValueError):
    """The metafile as a whole could not be parsed."""


@dataclass
class IngestResult:
    """Outcome of parsing one metafile."""
    cycle: str
    from_date: str = ""
    to_date: str = ""
    records: List[ChartRecord] = field(default_factory=list)
    skipped: int = 0
    deleted: int = 0
    total: int = 0


def _text(el: ElementTree.Element, tag: str) -> str:
    """Safely extract text from a child element."""
    child = el.find(tag)
    return child.text.strip() if child is not None and child.text else ""


def _attr(el: ElementTree.Element, name: str) -> str:
    return (el.get(name) or "").strip()


def parse_metafile(
    document: Union[str, bytes],
    pdf_base_url: str = DEFAULT_PDF_BASE_URL,
) -> IngestResult:
    """Parse a d-TPP metafile into chart records in feed order.

    Malformed records are skipped and counted; only a document that cannot be
    read as a d-TPP metafile at all raises FeedParseError.
    """
    try:
        root = ElementTree.fromstring(document)
    except ElementTree.ParseError as e:
        raise FeedParseError(f"Metafile is not valid XML: {e}") from e

    if root.tag != ROOT_TAG:
        raise FeedParseError(f"Unexpected root element <{root.tag}>, expected <{ROOT_TAG}>")

    cycle = _attr(root, "cycle")
    if not cycle:
        raise FeedParseError("Metafile has no cycle attribute")

    result = IngestResult(
        cycle=cycle,
        from_date=_attr(root, "from_edate"),
        to_date=_attr(root, "to_edate"),
    )
    base = pdf_base_url.rstrip("/")

    for state in root.findall("state_code"):
        for city in state.findall("city_name"):
            for airport in city.findall("airport_name"):
                faa_ident = _attr(airport, "apt_ident").upper()
                icao_ident = _attr(airport, "icao_ident").upper()

                for record in airport.findall("record"):
                    result.total += 1
                    chart_name = _text(record, "chart_name")
                    pdf_name = _text(record, "pdf_name")

                    if not chart_name or not pdf_name or not (faa_ident or icao_ident):
                        result.skipped += 1
                        logger.debug(
                            "Skipping malformed record at %s (chart_name=%r, pdf_name=%r)",
                            _attr(airport, "ID") or faa_ident or "?", chart_name, pdf_name,
                        )
                        continue

                    if _text(record, "useraction").upper() == "D":
                        result.deleted += 1
                        continue

                    chart_code = _text(record, "chart_code").upper()
                    result.records.append(ChartRecord(
                        state=_attr(state, "ID"),
                        state_full=_attr(state, "state_fullname"),
                        city=_attr(city, "ID"),
                        volume=_attr(city, "volume"),
                        airport_name=_attr(airport, "ID"),
                        military=_attr(airport, "military"),
                        faa_ident=faa_ident,
                        icao_ident=icao_ident,
                        chart_seq=_text(record, "chartseq"),
                        chart_code=chart_code,
                        chart_name=chart_name,
                        pdf_name=pdf_name,
                        pdf_path=f"{base}/{cycle}/{pdf_name}",
                        chart_group=group_for_chart_code(chart_code),
                    ))

    logger.info(
        "Parsed d-TPP cycle %s: %d charts, %d skipped, %d deleted",
        cycle, len(result.records), result.skipped, result.deleted,
    )
    return result
