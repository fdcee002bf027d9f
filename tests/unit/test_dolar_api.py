"""
Unit tests for the reference rate client.

Run: pytest tests/unit/test_dolar_api.py -v
"""

from unittest.mock import patch

import requests

from integrations.dolar_api import DolarApiClient

URL = "https://dolarapi.example/v1/dolares/oficial"


def client() -> DolarApiClient:
    return DolarApiClient(url=URL, fallback_rate=1400.0, timeout=3)


class TestDolarApiClient:

    def test_uses_venta(self, mock_response):
        payload = {"moneda": "USD", "compra": 1365.0, "venta": 1415.5, "fechaActualizacion": "2026-10-19T12:00:00Z"}
        with patch("integrations.dolar_api.requests.get", return_value=mock_response(json_data=payload)):
            rate = client().get_reference_rate()

        assert rate.rate == 1415.5
        assert rate.source == "dolarapi_oficial_venta"
        assert rate.retrieved_at == "2026-10-19T12:00:00Z"

    def test_falls_back_to_promedio(self, mock_response):
        payload = {"venta": None, "promedio": "1400,5"}
        with patch("integrations.dolar_api.requests.get", return_value=mock_response(json_data=payload)):
            rate = client().get_reference_rate()

        assert rate.rate == 1400.5
        assert rate.source == "dolarapi_oficial_promedio"

    def test_transport_failure_uses_configured_rate(self):
        with patch("integrations.dolar_api.requests.get", side_effect=requests.exceptions.Timeout("slow")):
            rate = client().get_reference_rate()

        assert rate.rate == 1400.0
        assert rate.source == "fallback"

    def test_invalid_json_uses_configured_rate(self, mock_response):
        with patch("integrations.dolar_api.requests.get", return_value=mock_response(content=b"<html>")):
            rate = client().get_reference_rate()

        assert rate.source == "fallback"

    def test_zero_rate_is_not_usable(self, mock_response):
        with patch("integrations.dolar_api.requests.get", return_value=mock_response(json_data={"venta": 0})):
            assert client().fetch_rate() is None
