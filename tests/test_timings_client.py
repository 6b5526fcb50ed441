import pytest
import requests
import responses
from responses import matchers

from timings_client import (
    HTTP_STATUS,
    INVALID_PAYLOAD,
    TRANSPORT,
    NetworkFailure,
    Timings,
    TimingsClient,
)

BASE_URL = "http://prayer.test/api"
TODAY_URL = f"{BASE_URL}/today"
DAY_URL = f"{BASE_URL}/ramadan/day"

PAYLOAD = {
    "Fajr": "05:10",
    "Dhuhr": "12:30",
    "Asr": "15:45",
    "Maghrib": "18:12",
    "Isha": "19:30 (EST)",
}


def test_fetch_timings_uses_default_location():
    client = TimingsClient(BASE_URL)

    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            TODAY_URL,
            json=PAYLOAD,
            status=200,
            match=[matchers.query_param_matcher({"city": "Toronto", "country": "Canada"})],
        )
        timings = client.fetch_timings()
        call_count = len(mock.calls)
    assert call_count == 1

    assert timings == Timings(fajr="05:10", dhuhr="12:30", asr="15:45", maghrib="18:12", isha="19:30 (EST)")
    assert timings.get("Isha") == "19:30 (EST)"
    assert list(timings.as_dict()) == ["Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"]


def test_fetch_timings_passes_city_and_country():
    client = TimingsClient(BASE_URL + "/")

    with responses.RequestsMock() as mock:
        mock.add(
            responses.GET,
            TODAY_URL,
            json=PAYLOAD,
            match=[matchers.query_param_matcher({"city": "Casablanca", "country": "MA"})],
        )
        timings = client.fetch_timings("Casablanca", "MA")
    assert timings.fajr == "05:10"


def test_fetch_day_label_returns_text_verbatim():
    client = TimingsClient(BASE_URL)

    with responses.RequestsMock() as mock:
        mock.add(responses.GET, DAY_URL, body="Ramadan day 12 ", status=200, content_type="text/plain")
        label = client.fetch_day_label()
    assert label == "Ramadan day 12 "


def test_http_error_is_reported_as_network_failure():
    client = TimingsClient(BASE_URL)

    with responses.RequestsMock() as mock:
        mock.add(responses.GET, TODAY_URL, json={"error": "boom"}, status=503)
        with pytest.raises(NetworkFailure) as excinfo:
            client.fetch_timings()
    assert excinfo.value.kind == HTTP_STATUS
    assert excinfo.value.status_code == 503


def test_transport_error_is_reported_as_network_failure():
    client = TimingsClient(BASE_URL)

    with responses.RequestsMock() as mock:
        mock.add(responses.GET, DAY_URL, body=requests.ConnectionError("connection refused"))
        with pytest.raises(NetworkFailure) as excinfo:
            client.fetch_day_label()
    assert excinfo.value.kind == TRANSPORT
    assert excinfo.value.status_code is None


def test_non_json_timings_body_is_invalid_payload():
    client = TimingsClient(BASE_URL)

    with responses.RequestsMock() as mock:
        mock.add(responses.GET, TODAY_URL, body="<html>oops</html>", status=200)
        with pytest.raises(NetworkFailure) as excinfo:
            client.fetch_timings()
    assert excinfo.value.kind == INVALID_PAYLOAD


def test_missing_prayer_field_is_invalid_payload():
    client = TimingsClient(BASE_URL)
    payload = dict(PAYLOAD)
    del payload["Asr"]

    with responses.RequestsMock() as mock:
        mock.add(responses.GET, TODAY_URL, json=payload)
        with pytest.raises(NetworkFailure) as excinfo:
            client.fetch_timings()
    assert excinfo.value.kind == INVALID_PAYLOAD
    assert "Asr" in str(excinfo.value)


def test_timings_from_payload_rejects_non_objects():
    with pytest.raises(ValueError):
        Timings.from_payload(["05:10"])
