import json
import os
import tempfile
from datetime import datetime, timezone
from unittest import TestCase, mock

import requests

from windmap.errors import SampleSourceError, describe
from windmap.samples import StationSample, load_samples, observation_time, project_samples, wind_vector
from windmap.utils_time import cycle_key, parse_sample_date


def identity(lon, lat):
    return lon, lat


def record(station, lon, lat, direction, speed, date="2013-08-24T16:00:00+09:00"):
    return {"stationId": station, "coordinates": [lon, lat], "wind": [direction, speed], "date": date}


class TestWindVector(TestCase):

    def test_northerly_blows_down(self):
        dx, dy = wind_vector(0, 2)
        self.assertAlmostEqual(dx, 0.0)
        self.assertAlmostEqual(dy, 2.0)

    def test_easterly_blows_left(self):
        dx, dy = wind_vector(90, 3)
        self.assertAlmostEqual(dx, -3.0)
        self.assertAlmostEqual(dy, 0.0)

    def test_southwesterly(self):
        dx, dy = wind_vector(225, 1)
        self.assertAlmostEqual(dx, 0.5 ** 0.5)
        self.assertAlmostEqual(dy, -(0.5 ** 0.5))


class TestProjectSamples(TestCase):

    def test_falsy_observations_dropped(self):
        records = [
            record(1, 0, 0, 90, 2),
            record(2, 1, 1, 0, 2),       # direction 0 reads as missing
            record(3, 2, 2, 180, 0),     # calm
            record(4, 3, 3, None, None),
            {"stationId": 5, "coordinates": [4, 4]},
        ]
        samples = project_samples(records, identity)
        self.assertEqual([s.station_id for s in samples], ["1"])
        self.assertEqual(samples[0].location, (0.0, 0.0))

    def test_keep_calm(self):
        records = [
            record(1, 0, 0, 0, 2),
            record(2, 1, 1, None, 0),
            record(3, 2, 2, None, 4),
            record(4, 3, 3, 90, None),
        ]
        samples = project_samples(records, identity, keep_calm=True)
        self.assertEqual([s.station_id for s in samples], ["1", "2"])
        self.assertAlmostEqual(samples[0].vector[1], 2.0)
        self.assertEqual(samples[1].vector, (-0.0, 0.0))

    def test_projection_applied(self):
        samples = project_samples([record("x", 10, 20, 270, 1)], lambda lon, lat: (lon * 2, lat + 1))
        self.assertEqual(samples[0].location, (20.0, 21.0))
        self.assertAlmostEqual(samples[0].vector[0], 1.0)

    def test_malformed_numbers_fail_loudly(self):
        with self.assertRaises(ValueError):
            project_samples([record(1, "east", 0, 90, 2)], identity)
        with self.assertRaises(ValueError):
            project_samples([record(1, 0, 0, 90, float("nan"))], identity)
        with self.assertRaises(ValueError):
            project_samples([{"stationId": 1, "wind": [90, 2]}], identity)

    def test_observation_time(self):
        samples = project_samples([record(1, 0, 0, 90, 2)], identity)
        self.assertEqual(observation_time(samples), datetime(2013, 8, 24, 7, tzinfo=timezone.utc))
        self.assertIsNone(observation_time([StationSample("a", (0, 0), (0, 0))]))


class TestLoadSamples(TestCase):

    def test_local_file(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "current.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump([record(1, 0, 0, 90, 2)], f)
            self.assertEqual(load_samples(path)[0]["stationId"], 1)

    def test_missing_file_is_no_data(self):
        with self.assertRaises(SampleSourceError) as ctx:
            load_samples("/nonexistent/samples.json")
        self.assertEqual(ctx.exception.status, 404)
        self.assertEqual(describe(ctx.exception), "No Data")

    def test_http_error(self):
        resp = mock.Mock(status_code=503, reason="Service Unavailable")
        resp.raise_for_status.side_effect = requests.HTTPError("503 Server Error", response=resp)
        with mock.patch("windmap.samples.requests.get", return_value=resp):
            with self.assertRaises(SampleSourceError) as ctx:
                load_samples("http://example.com/samples/current")
        self.assertEqual(ctx.exception.status, 503)
        self.assertEqual(describe(ctx.exception), "503 Service Unavailable")

    def test_connection_error(self):
        with mock.patch("windmap.samples.requests.get", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(SampleSourceError) as ctx:
                load_samples("https://example.com/samples/current")
        self.assertEqual(ctx.exception.status, -1)

    def test_http_ok(self):
        resp = mock.Mock(ok=True, status_code=200)
        resp.json.return_value = [record(7, 0, 0, 90, 2)]
        with mock.patch("windmap.samples.requests.get", return_value=resp) as get:
            records = load_samples("http://example.com/samples/current", timeout=3)
        get.assert_called_once_with("http://example.com/samples/current", timeout=3)
        resp.raise_for_status.assert_called_once_with()
        self.assertEqual(records[0]["stationId"], 7)

    def test_not_a_list(self):
        resp = mock.Mock(ok=True, status_code=200)
        resp.json.return_value = {"error": "nope"}
        with mock.patch("windmap.samples.requests.get", return_value=resp):
            with self.assertRaises(SampleSourceError):
                load_samples("http://example.com/samples/current")

    def test_http_error_without_response(self):
        resp = mock.Mock()
        resp.raise_for_status.side_effect = requests.HTTPError("bad gateway")
        with mock.patch("windmap.samples.requests.get", return_value=resp):
            with self.assertRaises(SampleSourceError) as ctx:
                load_samples("http://example.com/samples/current")
        self.assertEqual(ctx.exception.status, -1)


class TestCycleKey(TestCase):

    def test_key_is_utc_observation_hour(self):
        self.assertEqual(cycle_key(parse_sample_date("2013-08-24T16:00:00+09:00")), "20130824_0700Z")
        self.assertEqual(cycle_key(datetime(2013, 8, 24, 23, 59)), "20130824_2300Z")
