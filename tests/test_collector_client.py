#!/usr/bin/env python3
"""
Collector Client Tests

Verifies best-effort send semantics:
- Identity headers on every request
- Client never raises on transport errors
- 401 / 429 / 503 are logged, nothing more
- no_post produces no HTTP calls
- Reply analysis only when requested, reply errors never escape

Run: python3 tests/test_collector_client.py
"""

import io
import logging
import socket
import sys
import urllib.error
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.config import Settings
from collector.client import CollectorClient
from schemas.command import AgentRecord


def create_settings(**overrides) -> Settings:
    values = {
        "token": "secret-token",
        "environment": "staging",
        "app_group": "payments",
        "collector_base_url": "http://collector.test/v1.17/",
        "no_post": False,
    }
    values.update(overrides)
    return Settings(**values)


def create_response(status: int = 200, body: bytes = b"{}") -> MagicMock:
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.read.return_value = body
    mock_response.__enter__ = MagicMock(return_value=mock_response)
    mock_response.__exit__ = MagicMock(return_value=False)
    return mock_response


def create_client(**overrides) -> CollectorClient:
    return CollectorClient(create_settings(**overrides), AgentRecord(name="agent-1"))


def test_url_joins_base_and_path():
    """Test: Endpoint urls are built from the configured base."""
    print("=" * 60)
    print("TEST: URL construction")
    print("=" * 60)

    client = create_client()
    assert client.url("/panics/create") == "http://collector.test/v1.17/panics/create"

    print("  ✅ PASSED\n")


def test_post_sets_identity_headers():
    """Test: Every POST carries token, environment, group and agent headers."""
    print("=" * 60)
    print("TEST: Identity headers")
    print("=" * 60)

    client = create_client()

    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.return_value = create_response()
        status = client.post(b'{"a":1}', client.url("/panics/create"))

        assert status == 200
        req = mock_urlopen.call_args[0][0]
        assert req.get_method() == "POST"
        assert req.data == b'{"a":1}'
        assert req.get_header("X-deferid") == "secret-token"
        assert req.get_header("Content-type") == "application/json"
        assert req.get_header("User-agent") == "deferwatch v1.17"
        assert req.get_header("X-dpenv") == "staging"
        assert req.get_header("X-dpgroup") == "payments"
        assert req.get_header("X-dpagentid") == "agent-1"
        print("  ✓ All identity headers present")

    print("  ✅ PASSED\n")


def test_client_never_raises_on_connection_error():
    """Test: Connection errors are logged and swallowed."""
    print("=" * 60)
    print("TEST: Client never raises on connection error")
    print("=" * 60)

    client = create_client()

    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.side_effect = urllib.error.URLError("Connection refused")
        assert client.post(b"{}", client.url("/panics/create")) is None
        print("  ✓ No exception raised on URLError")

    print("  ✅ PASSED\n")


def test_client_never_raises_on_timeout():
    """Test: Timeouts are logged and swallowed."""
    print("=" * 60)
    print("TEST: Client never raises on timeout")
    print("=" * 60)

    client = create_client()

    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.side_effect = socket.timeout("timed out")
        assert client.post(b"{}", client.url("/panics/create")) is None
        print("  ✓ No exception raised on timeout")

    print("  ✅ PASSED\n")


def test_error_statuses_are_logged(caplog):
    """Test: 401, 429 and 503 produce a warning and are returned."""
    print("=" * 60)
    print("TEST: Error statuses logged")
    print("=" * 60)

    client = create_client()
    expectations = {
        401: "wrong or invalid API token",
        429: "rate limited",
        503: "service not available",
    }

    for code, text in expectations.items():
        caplog.clear()
        error = urllib.error.HTTPError(
            client.url("/panics/create"), code, "error", {}, io.BytesIO(b"")
        )
        with patch("urllib.request.urlopen", side_effect=error):
            with caplog.at_level(logging.WARNING, logger="collector.client"):
                assert client.post(b"{}", client.url("/panics/create")) == code
        assert any(text in record.message for record in caplog.records)
        print(f"  ✓ {code} logged")

    print("  ✅ PASSED\n")


def test_no_post_makes_no_http_calls():
    """Test: When no_post is set, no HTTP calls are made."""
    print("=" * 60)
    print("TEST: no_post produces no HTTP calls")
    print("=" * 60)

    client = create_client(no_post=True)
    handler = MagicMock()
    client.reply_handler = handler

    with patch("urllib.request.urlopen") as mock_urlopen:
        assert client.post(b"{}", client.url("/panics/create"), analyse_response=True) is None
        mock_urlopen.assert_not_called()
        handler.assert_not_called()
        print("  ✓ No HTTP calls when no_post")

    print("  ✅ PASSED\n")


def test_reply_analysed_only_when_requested():
    """Test: The reply handler sees the body only for analysed sends."""
    print("=" * 60)
    print("TEST: Reply analysis on request")
    print("=" * 60)

    client = create_client()
    handler = MagicMock()
    client.reply_handler = handler

    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.return_value = create_response(body=b'{"Commands": []}')

        client.post(b"{}", client.url("/uploads/statistics/create"), analyse_response=False)
        handler.assert_not_called()

        client.post(b"{}", client.url("/uploads/statistics/create"), analyse_response=True)
        handler.assert_called_once_with(b'{"Commands": []}')
        print("  ✓ Handler called once, for the analysed send")

    print("  ✅ PASSED\n")


def test_no_analysis_after_transport_failure():
    """Test: A failed send never reaches the reply handler."""
    print("=" * 60)
    print("TEST: No analysis after transport failure")
    print("=" * 60)

    client = create_client()
    handler = MagicMock()
    client.reply_handler = handler

    with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
        client.post(b"{}", client.url("/uploads/statistics/create"), analyse_response=True)

    handler.assert_not_called()

    print("  ✅ PASSED\n")


def test_reply_handler_errors_never_escape():
    """Test: Reply processing failures do not reach the caller."""
    print("=" * 60)
    print("TEST: Reply handler errors swallowed")
    print("=" * 60)

    client = create_client()
    client.reply_handler = MagicMock(side_effect=ValueError("bad reply"))

    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.return_value = create_response(body=b"garbage")
        assert client.post(b"{}", client.url("/uploads/statistics/create"), analyse_response=True) == 200

    print("  ✅ PASSED\n")


def run_all_tests():
    """Run all collector client tests."""
    print("\n" + "=" * 60)
    print("   COLLECTOR CLIENT TEST SUITE")
    print("=" * 60 + "\n")

    tests = [
        test_url_joins_base_and_path,
        test_post_sets_identity_headers,
        test_client_never_raises_on_connection_error,
        test_client_never_raises_on_timeout,
        test_no_post_makes_no_http_calls,
        test_reply_analysed_only_when_requested,
        test_no_analysis_after_transport_failure,
        test_reply_handler_errors_never_escape,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except AssertionError as e:
            print(f"  ❌ FAILED: {e}\n")
            failed += 1
        except Exception as e:
            print(f"  ❌ ERROR: {e}\n")
            failed += 1

    print("=" * 60)
    print(f"   RESULTS: {passed} passed, {failed} failed")
    print("=" * 60 + "\n")

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
