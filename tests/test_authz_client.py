"""Unit tests for tasks/authz.py -- the remote authorization client.

The HTTP session is a MagicMock, so no network traffic happens. Each test
scripts what the auth service's /verify endpoint "returns".
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from cache.store import VerificationCache
from core.errors import Unauthorized
from tasks.authz import AuthServiceClient

_HEADER = "Bearer abc.def.ghi"


def _response(status_code=200, body=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    if json_error:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = body if body is not None else {}
    return resp


def _client(response=None, side_effect=None, cache=None, base_url="http://auth.local:8080"):
    session = MagicMock()
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = response
    return AuthServiceClient(base_url, timeout=2.5, cache=cache, session=session), session


class TestAuthorize:
    def test_success_returns_user_id(self):
        client, session = _client(_response(200, {"valid": True, "user_id": 42, "username": "alice01"}))
        assert client.authorize(_HEADER) == 42
        session.get.assert_called_once_with(
            "http://auth.local:8080/verify",
            headers={"Authorization": _HEADER},
            timeout=2.5,
        )

    def test_header_is_forwarded_verbatim(self):
        client, session = _client(_response(200, {"user_id": 1}))
        client.authorize("Bearer   odd-spacing")
        assert session.get.call_args.kwargs["headers"] == {"Authorization": "Bearer   odd-spacing"}

    def test_trailing_slash_in_base_url(self):
        client, session = _client(_response(200, {"user_id": 1}), base_url="http://auth.local/")
        client.authorize(_HEADER)
        assert session.get.call_args.args[0] == "http://auth.local/verify"

    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_missing_header_skips_network(self, header):
        client, session = _client(_response(200, {"user_id": 1}))
        with pytest.raises(Unauthorized):
            client.authorize(header)
        session.get.assert_not_called()

    @pytest.mark.parametrize("status", [401, 403, 404, 500, 502])
    def test_non_200_is_unauthorized(self, status):
        client, _ = _client(_response(status, {"user_id": 1}))
        with pytest.raises(Unauthorized):
            client.authorize(_HEADER)

    @pytest.mark.parametrize(
        "error",
        [requests.ConnectionError("refused"), requests.Timeout("slow"), requests.TooManyRedirects("loop")],
    )
    def test_transport_failure_is_unauthorized_without_retry(self, error):
        client, session = _client(side_effect=error)
        with pytest.raises(Unauthorized):
            client.authorize(_HEADER)
        assert session.get.call_count == 1

    def test_undecodable_body_is_unauthorized(self):
        client, _ = _client(_response(200, json_error=True))
        with pytest.raises(Unauthorized):
            client.authorize(_HEADER)

    @pytest.mark.parametrize("body", [{}, {"user_id": "42"}, {"user_id": None}, {"user_id": True}, [42], {"user_id": 4.2}])
    def test_missing_or_malformed_user_id_is_unauthorized(self, body):
        client, _ = _client(_response(200, body))
        with pytest.raises(Unauthorized):
            client.authorize(_HEADER)


class TestVerificationCaching:
    def test_success_is_cached(self):
        cache = VerificationCache(ttl=30)
        client, session = _client(_response(200, {"user_id": 42}), cache=cache)
        assert client.authorize(_HEADER) == 42
        assert client.authorize(_HEADER) == 42
        assert session.get.call_count == 1

    def test_failure_is_never_cached(self):
        cache = VerificationCache(ttl=30)
        client, session = _client(_response(401), cache=cache)
        for _ in range(2):
            with pytest.raises(Unauthorized):
                client.authorize(_HEADER)
        assert session.get.call_count == 2
        assert len(cache) == 0

    def test_already_expired_token_is_not_cached(self):
        cache = VerificationCache(ttl=30)
        expired = (datetime.now(timezone.utc) - timedelta(seconds=1)).isoformat()
        client, session = _client(_response(200, {"user_id": 42, "expires_at": expired}), cache=cache)
        client.authorize(_HEADER)
        client.authorize(_HEADER)
        assert session.get.call_count == 2

    def test_different_tokens_are_cached_separately(self):
        cache = VerificationCache(ttl=30)
        client, session = _client(_response(200, {"user_id": 42}), cache=cache)
        client.authorize(_HEADER)
        client.authorize("Bearer another.token.value")
        assert session.get.call_count == 2
