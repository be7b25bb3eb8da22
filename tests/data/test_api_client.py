"""Tests for the FPL API client retry/backoff behaviour."""

from unittest.mock import Mock, patch

import pytest
import requests

from touchline.data.api_client import FPLApiClient
from touchline.errors import UpstreamUnavailable


def _response(payload=None, status=200, headers=None, bad_json=False):
    resp = Mock()
    resp.status_code = status
    resp.headers = headers or {}
    if status >= 400 and status != 429:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Server Error")
    if bad_json:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = payload
    return resp


def _client(responses, retries=3, backoff_base=1.0):
    session = Mock()
    session.headers = {}
    session.get.side_effect = responses
    return FPLApiClient(
        base_url="http://fpl.test/api", retries=retries,
        backoff_base=backoff_base, session=session,
    )


@pytest.fixture
def no_sleep():
    with patch("touchline.data.api_client.time.sleep") as sleep, \
            patch("touchline.data.api_client.random.uniform", return_value=0.0):
        yield sleep


class TestRetries:
    """Bounded attempts with exponential backoff."""

    def test_success_first_try(self, no_sleep):
        client = _client([_response([{"id": 1}])])

        assert client.get_fixtures() == [{"id": 1}]
        no_sleep.assert_not_called()

    def test_recovers_after_transient_failures(self, no_sleep):
        client = _client([
            requests.ConnectionError("reset"),
            _response(status=503),
            _response([{"id": 1}]),
        ])

        assert client.get_fixtures() == [{"id": 1}]
        assert client.session.get.call_count == 3

    def test_raises_after_all_attempts(self, no_sleep):
        """Three failures -> UpstreamUnavailable, delays double from the base."""
        client = _client([requests.ConnectionError("down")] * 3)

        with pytest.raises(UpstreamUnavailable, match="after 3 attempts"):
            client.get_fixtures()

        assert client.session.get.call_count == 3
        # No sleep after the final attempt
        assert [c.args[0] for c in no_sleep.call_args_list] == [1.0, 2.0]

    def test_timeout_is_passed_to_every_call(self, no_sleep):
        client = _client([requests.Timeout("slow")] * 3)

        with pytest.raises(UpstreamUnavailable):
            client.get_fixtures()

        for call in client.session.get.call_args_list:
            assert call.kwargs["timeout"] == 30

    def test_rate_limit_honours_retry_after(self, no_sleep):
        client = _client([
            _response(status=429, headers={"Retry-After": "7"}),
            _response([{"id": 1}]),
        ])

        assert client.get_fixtures() == [{"id": 1}]
        no_sleep.assert_called_once_with(7)

    def test_invalid_json_counts_as_failure(self, no_sleep):
        client = _client([_response(bad_json=True)] * 3)

        with pytest.raises(UpstreamUnavailable, match="invalid JSON"):
            client.get_fixtures()

    def test_wrong_shape_is_unavailable(self, no_sleep):
        client = _client([_response({"detail": "maintenance"})])

        with pytest.raises(UpstreamUnavailable, match="not a list"):
            client.get_fixtures()

    def test_rejects_zero_retries(self):
        with pytest.raises(ValueError):
            FPLApiClient(retries=0)


class TestBootstrap:
    """Bootstrap caching and gameweek resolution."""

    def test_bootstrap_cache(self):
        client = FPLApiClient()
        client._bootstrap_cache = {"cached": True}

        assert client.get_bootstrap() == {"cached": True}

    def test_force_refetches(self, no_sleep):
        client = _client([_response({"elements": [], "events": []})])
        client._bootstrap_cache = {"elements": ["stale"]}

        assert client.get_bootstrap(force=True) == {"elements": [], "events": []}

    def test_bootstrap_without_elements_is_unavailable(self, no_sleep):
        client = _client([_response({"events": []})])

        with pytest.raises(UpstreamUnavailable, match="elements"):
            client.get_bootstrap()

    def test_target_gw_prefers_next(self):
        client = FPLApiClient()
        client._bootstrap_cache = {
            "elements": [],
            "events": [
                {"id": 18, "finished": True},
                {"id": 19, "is_current": True},
                {"id": 20, "is_next": True},
            ],
        }

        assert client.get_current_gw() == 19
        assert client.get_target_gw() == 20

    def test_target_gw_falls_back_to_current(self):
        client = FPLApiClient()
        client._bootstrap_cache = {"elements": [], "events": [{"id": 38, "is_current": True}]}

        assert client.get_target_gw() == 38

    def test_target_gw_after_latest_finished(self):
        client = FPLApiClient()
        client._bootstrap_cache = {
            "elements": [],
            "events": [{"id": 1, "finished": True}, {"id": 2, "finished": True}, {"id": 3}],
        }

        assert client.get_target_gw() == 3

    def test_target_gw_defaults_to_one(self):
        client = FPLApiClient()
        client._bootstrap_cache = {"elements": [], "events": []}

        assert client.get_target_gw() == 1

    def test_malformed_events_are_skipped(self):
        client = FPLApiClient()
        client._bootstrap_cache = {
            "elements": [],
            "events": [
                {"is_next": True},
                "garbage",
                {"id": None, "is_current": True},
                {"id": 4, "finished": True},
            ],
        }

        assert client.get_current_gw() is None
        assert client.get_target_gw() == 5
