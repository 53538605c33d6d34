import json

import pytest
import requests

from discogs_watcher.core.models import BarePrice, MarketPrice
from discogs_watcher.integrations.http_client import (
    FetchError,
    fetch_summary,
    make_discogs_session,
    map_release,
)


def _response(status: int, body, reason: str = "OK") -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r.reason = reason
    r.url = "https://api.discogs.com/releases/x"
    r.encoding = "utf-8"
    r._content = (body if isinstance(body, str) else json.dumps(body)).encode("utf-8")
    return r


class FakeSession:
    def __init__(self, response=None, exc=None) -> None:
        self.response = response
        self.exc = exc
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.exc is not None:
            raise self.exc
        return self.response


RELEASE = {
    "id": 249504,
    "title": "Never Gonna Give You Up",
    "artists": [{"name": "Rick Astley"}],
    "num_for_sale": 12,
    "lowest_price": {"value": 1.5, "currency": "EUR"},
    "resource_url": "https://api.discogs.com/releases/249504",
    "uri": "https://www.discogs.com/release/249504-Rick-Astley-Never-Gonna-Give-You-Up",
    "images": [
        {"type": "secondary", "uri": "X"},
        {"type": "primary", "uri": "Y", "uri150": "Y150"},
    ],
}


def test_map_release_full_payload() -> None:
    s = map_release(RELEASE, 249504)
    assert s.id == 249504
    assert s.title == "Never Gonna Give You Up"
    assert s.artist_label == "Rick Astley"
    assert s.quantity_available == 12
    assert s.lowest_price == MarketPrice(1.5, "EUR")
    assert s.thumbnail_url == "Y150"
    assert s.image_url == "Y"
    assert s.canonical_url == RELEASE["uri"]


def test_map_release_artist_label() -> None:
    assert map_release({"artists": [{"name": "A"}, {"name": "B"}]}, 1).artist_label == "A, B"
    assert map_release({"artists": []}, 1).artist_label == ""
    assert map_release({"artists": "A"}, 1).artist_label == ""


def test_map_release_image_fallbacks() -> None:
    only_secondary = map_release({"images": [{"type": "secondary", "uri": "X"}]}, 1)
    assert only_secondary.thumbnail_url == "X"
    assert only_secondary.image_url == "X"

    first_thumb = map_release({"images": [{"type": "secondary", "uri": "X", "uri150": "X150"}]}, 1)
    assert first_thumb.thumbnail_url == "X150"

    assert map_release({"images": []}, 1).thumbnail_url is None
    assert map_release({}, 1).image_url is None


def test_map_release_absent_fields_are_unknown_not_zero() -> None:
    s = map_release({"title": "T"}, 77)
    assert s.quantity_available is None
    assert s.lowest_price is None
    assert s.uri is None
    assert s.resource_url == "https://api.discogs.com/releases/77"
    assert s.canonical_url == "https://api.discogs.com/releases/77"

    assert map_release({"num_for_sale": 0}, 1).quantity_available == 0
    assert map_release({"num_for_sale": "3"}, 1).quantity_available is None


def test_map_release_price_shapes() -> None:
    assert map_release({"lowest_price": 3}, 1).lowest_price == BarePrice(3.0)
    assert map_release({"lowest_price": {"value": 9.99, "currency": "USD"}}, 1).lowest_price == MarketPrice(9.99, "USD")
    assert map_release({"lowest_price": {"currency": "USD"}}, 1).lowest_price is None
    assert map_release({"lowest_price": None}, 1).lowest_price is None
    assert map_release({"lowest_price": True}, 1).lowest_price is None


def test_map_release_non_dict_payload_degrades() -> None:
    s = map_release(["unexpected"], 5)
    assert s.id == 5
    assert s.title == ""


def test_fetch_summary_success() -> None:
    sess = FakeSession(_response(200, RELEASE))
    s = fetch_summary(sess, 249504, timeout_s=7)
    assert s.artist_label == "Rick Astley"
    assert sess.calls == [("https://api.discogs.com/releases/249504", 7)]


def test_fetch_summary_status_error_includes_id_status_and_body_prefix() -> None:
    body = "x" * 500
    sess = FakeSession(_response(404, body, reason="Not Found"))

    with pytest.raises(FetchError) as exc:
        fetch_summary(sess, 202)

    err = exc.value
    assert err.release_id == 202
    assert err.status_code == 404
    assert "202" in str(err)
    assert "404 Not Found" in str(err)
    assert "x" * 200 in str(err)
    assert "x" * 201 not in str(err)
    assert len(sess.calls) == 1


def test_fetch_summary_network_error() -> None:
    sess = FakeSession(exc=requests.ConnectionError("boom"))
    with pytest.raises(FetchError) as exc:
        fetch_summary(sess, 9)
    assert exc.value.status_code is None
    assert "Release 9" in exc.value.message


def test_fetch_summary_invalid_json() -> None:
    sess = FakeSession(_response(200, "<html>oops</html>"))
    with pytest.raises(FetchError):
        fetch_summary(sess, 3)


def test_session_auth_header_only_with_token() -> None:
    assert make_discogs_session("abc").headers["Authorization"] == "Discogs token=abc"
    assert "Authorization" not in make_discogs_session(None).headers


def test_map_release_non_finite_numbers_are_absent() -> None:
    s = map_release({"lowest_price": float("nan"), "num_for_sale": float("inf")}, 1)
    assert s.lowest_price is None
    assert s.quantity_available is None

    s = map_release({"lowest_price": {"value": float("-inf"), "currency": "USD"}}, 1)
    assert s.lowest_price is None


def test_fetch_summary_nan_and_oversized_numbers_degrade() -> None:
    huge = "1" + "0" * 400
    body = '{"id": 1, "title": "T", "lowest_price": ' + huge + ', "num_for_sale": ' + huge + "}"
    s = fetch_summary(FakeSession(_response(200, body)), 1)
    assert s.title == "T"
    assert s.lowest_price is None
    assert s.quantity_available is None

    s = fetch_summary(FakeSession(_response(200, '{"title": "N", "lowest_price": NaN}')), 2)
    assert s.lowest_price is None
