import os
import tempfile
import unittest
from datetime import date
from unittest import mock

import httpx

from data_ingestion.dtpp_feed import (
    DtppRefresher,
    cycle_effective_date,
    cycle_for_date,
    metafile_url,
)
from services.charts_service import ChartsService
from tests.dtpp_samples import SAMPLE_FEED


class TestCycles(unittest.TestCase):
    def test_known_cycles(self):
        self.assertEqual(cycle_for_date(date(2024, 1, 25)), "2401")
        self.assertEqual(cycle_for_date(date(2024, 6, 13)), "2406")
        self.assertEqual(cycle_for_date(date(2024, 7, 10)), "2406")
        self.assertEqual(cycle_for_date(date(2024, 7, 11)), "2407")

    def test_year_boundary(self):
        self.assertEqual(cycle_for_date(date(2024, 12, 26)), "2413")
        self.assertEqual(cycle_for_date(date(2025, 1, 22)), "2413")
        self.assertEqual(cycle_for_date(date(2025, 1, 23)), "2501")

    def test_year_with_fourteen_cycles(self):
        self.assertEqual(cycle_for_date(date(2020, 1, 2)), "2001")
        self.assertEqual(cycle_for_date(date(2020, 1, 30)), "2002")
        self.assertEqual(cycle_for_date(date(2020, 12, 31)), "2014")

    def test_before_reference(self):
        self.assertEqual(cycle_effective_date(date(2024, 1, 24)), date(2023, 12, 28))
        self.assertEqual(cycle_for_date(date(2024, 1, 24)), "2313")

    def test_metafile_url(self):
        self.assertEqual(
            metafile_url("2406"),
            "https://aeronav.faa.gov/d-tpp/2406/xml_data/d-tpp_Metafile.xml",
        )
        self.assertEqual(
            metafile_url("2406", "http://mirror.local/dtpp/"),
            "http://mirror.local/dtpp/2406/xml_data/d-tpp_Metafile.xml",
        )


class TestRefresher(unittest.TestCase):
    def setUp(self):
        self.service = ChartsService()
        with mock.patch.dict(os.environ, {"DTPP_CYCLE": "", "DTPP_METAFILE_PATH": ""}):
            self.refresher = DtppRefresher(self.service)

    def test_loads_current_cycle_once(self):
        with mock.patch.object(self.refresher, "fetch_metafile", return_value=SAMPLE_FEED) as fetch:
            self.assertTrue(self.refresher.refresh_once(date(2024, 6, 20)))
            self.assertFalse(self.refresher.refresh_once(date(2024, 6, 21)))
        fetch.assert_called_once_with("2406")
        self.assertEqual(self.service.index.cycle, "2406")

    def test_reloads_when_cycle_changes(self):
        with mock.patch.object(self.refresher, "fetch_metafile", return_value=SAMPLE_FEED) as fetch:
            self.refresher.refresh_once(date(2024, 6, 20))
            self.refresher.refresh_once(date(2024, 7, 11))
        self.assertEqual([c.args for c in fetch.call_args_list], [("2406",), ("2407",)])

    def test_fetch_failure_keeps_snapshot(self):
        self.service.refresh(SAMPLE_FEED)
        snapshot = self.service.index
        error = httpx.ConnectError("connection refused")
        with mock.patch.object(self.refresher, "fetch_metafile", side_effect=error):
            self.assertFalse(self.refresher.refresh_once(date(2024, 7, 11)))
        self.assertIs(self.service.index, snapshot)

    def test_parse_failure_is_retried(self):
        with mock.patch.object(self.refresher, "fetch_metafile", return_value=b"not xml") as fetch:
            self.assertFalse(self.refresher.refresh_once(date(2024, 6, 20)))
            self.assertFalse(self.refresher.refresh_once(date(2024, 6, 20)))
        self.assertEqual(fetch.call_count, 2)
        self.assertFalse(self.service.loaded)

    def test_pinned_cycle(self):
        with mock.patch.dict(os.environ, {"DTPP_CYCLE": "2406"}):
            refresher = DtppRefresher(self.service)
        self.assertEqual(refresher.current_cycle(date(2026, 1, 1)), "2406")

    def test_reads_local_metafile(self):
        with tempfile.NamedTemporaryFile("w", suffix=".xml", delete=False) as f:
            f.write(SAMPLE_FEED)
        try:
            with mock.patch.dict(os.environ, {"DTPP_METAFILE_PATH": f.name}):
                refresher = DtppRefresher(self.service)
            self.assertTrue(refresher.refresh_once(date(2024, 6, 20)))
            self.assertEqual(self.service.get_single_chart("KJFK", "ils").chart_name, "ILS OR LOC RWY 04L")
        finally:
            os.unlink(f.name)

    def test_download(self):
        response = httpx.Response(
            200,
            content=SAMPLE_FEED.encode("utf-8"),
            request=httpx.Request("GET", metafile_url("2406")),
        )
        with mock.patch("data_ingestion.dtpp_feed.httpx.get", return_value=response) as get:
            self.assertEqual(self.refresher.fetch_metafile("2406"), SAMPLE_FEED.encode("utf-8"))
        self.assertEqual(get.call_args.args[0], metafile_url("2406"))

    def test_retries_sooner_until_first_load(self):
        env = {"DTPP_CYCLE": "", "DTPP_REFRESH_INTERVAL": "21600", "DTPP_RETRY_INTERVAL": "300"}
        with mock.patch.dict(os.environ, env):
            refresher = DtppRefresher(self.service)
        with mock.patch.object(refresher, "fetch_metafile", return_value=b"not xml"):
            refresher.refresh_once(date(2024, 6, 20))
        self.assertEqual(refresher.next_wait(), 300)

        with mock.patch.object(refresher, "fetch_metafile", return_value=SAMPLE_FEED):
            refresher.refresh_once(date(2024, 6, 20))
        self.assertEqual(refresher.next_wait(), 21600)

    def test_disabled_refresher_does_not_start(self):
        with mock.patch.dict(os.environ, {"DTPP_REFRESH_ENABLED": "false"}):
            refresher = DtppRefresher(self.service)
        refresher.start()
        self.assertIsNone(refresher._thread)


if __name__ == "__main__":
    unittest.main()
