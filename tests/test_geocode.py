import os
import unittest
from unittest.mock import patch

import requests

from app.services import geocode


class ReverseGeocodeTests(unittest.TestCase):
    def setUp(self):
        self._key = os.environ.pop("GOOGLE_MAPS_API_KEY", None)

    def tearDown(self):
        os.environ.pop("GOOGLE_MAPS_API_KEY", None)
        if self._key is not None:
            os.environ["GOOGLE_MAPS_API_KEY"] = self._key

    def test_reverse_geocode_missing_key(self):
        result = geocode.reverse_geocode(-23.55, -46.63)
        self.assertEqual(result.get("status"), "ERROR")
        self.assertEqual(result.get("error"), "MISSING_KEY")

    @patch("app.services.geocode.requests.get")
    def test_reverse_geocode_ok(self, mock_get):
        os.environ["GOOGLE_MAPS_API_KEY"] = "test"
        mock_get.return_value.status_code = 200
        mock_get.return_value.json.return_value = {
            "status": "OK",
            "results": [
                {"place_id": "plus-code-only"},
                {"formatted_address": "Rua A, 123 - Centro", "place_id": "rua-a"},
            ],
        }
        result = geocode.reverse_geocode(-23.55, -46.63)
        self.assertEqual(result.get("status"), "OK")
        self.assertEqual(result.get("address"), "Rua A, 123 - Centro")
        self.assertEqual(mock_get.call_args.kwargs["timeout"], 5)

    @patch("app.services.geocode.requests.get")
    def test_reverse_geocode_timeout(self, mock_get):
        os.environ["GOOGLE_MAPS_API_KEY"] = "test"
        mock_get.side_effect = requests.Timeout("slow")
        result = geocode.reverse_geocode(-23.55, -46.63, timeout=1)
        self.assertEqual(result, {"status": "ERROR", "error": "REQUEST_FAILED"})

    @patch("app.services.geocode.requests.get")
    def test_reverse_geocode_zero_results(self, mock_get):
        os.environ["GOOGLE_MAPS_API_KEY"] = "test"
        mock_get.return_value.status_code = 200
        mock_get.return_value.json.return_value = {"status": "ZERO_RESULTS", "results": []}
        result = geocode.reverse_geocode(0.0, 0.0)
        self.assertEqual(result.get("error"), "ZERO_RESULTS")

    @patch("app.services.geocode.requests.get")
    def test_reverse_geocode_http_error(self, mock_get):
        os.environ["GOOGLE_MAPS_API_KEY"] = "test"
        mock_get.return_value.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")
        result = geocode.reverse_geocode(-23.55, -46.63)
        self.assertEqual(result, {"status": "ERROR", "error": "REQUEST_FAILED"})

    @patch("app.services.geocode.requests.get")
    def test_reverse_geocode_without_formatted_address(self, mock_get):
        os.environ["GOOGLE_MAPS_API_KEY"] = "test"
        mock_get.return_value.json.return_value = {"status": "OK", "results": [{"place_id": "abc"}]}
        result = geocode.reverse_geocode(-23.55, -46.63)
        self.assertEqual(result, {"status": "ERROR", "error": "NO_RESULTS"})
