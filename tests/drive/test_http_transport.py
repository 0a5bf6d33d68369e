import asyncio
import http.client
import io
import json
import ssl
import unittest
from unittest.mock import Mock
from urllib.error import HTTPError, URLError

from src.harvester.drive.client import RemoteClient
from src.harvester.drive.errors import MalformedResponseError, RemotePermissionError, TransientError
from src.harvester.drive.transport import DriveHttpTransport, StaticTokenAuthenticator, classify_http_error
from src.harvester.net.limiter import RequestLimiter
from src.harvester.net.retry import RetryConfig
from src.harvester.net.throttle import Throttle, ThrottleConfig


def _http_error(code: int, reason=None) -> HTTPError:
    body = b""
    if reason:
        body = json.dumps({"error": {"errors": [{"reason": reason}]}}).encode("utf-8")
    return HTTPError("https://example.invalid", code, "error", {}, io.BytesIO(body))


class TestClassifyHttpError(unittest.TestCase):
    def test_permission_codes(self) -> None:
        for code in (401, 403, 404):
            err = classify_http_error(_http_error(code), "item [x]")
            self.assertIsInstance(err, RemotePermissionError)
            self.assertFalse(err.should_retry)
            self.assertEqual(err.status_code, code)

    def test_rate_limited_403_is_transient(self) -> None:
        err = classify_http_error(_http_error(403, "userRateLimitExceeded"), "item [x]")
        self.assertIsInstance(err, TransientError)
        self.assertTrue(err.should_retry)

    def test_server_errors_are_transient(self) -> None:
        for code in (429, 500, 503):
            self.assertIsInstance(classify_http_error(_http_error(code), "item [x]"), TransientError)


class TestDriveHttpTransport(unittest.TestCase):
    def _transport(self, opener: Mock) -> DriveHttpTransport:
        transport = DriveHttpTransport(StaticTokenAuthenticator("tok"))
        transport._opener = opener
        return transport

    def test_list_page_request(self) -> None:
        opener = Mock()
        opener.open.return_value = io.BytesIO(b'{"files": []}')
        transport = self._transport(opener)

        self.assertEqual(transport.list_page("abc", "p2"), {"files": []})

        request = opener.open.call_args.args[0]
        self.assertEqual(request.get_header("Authorization"), "Bearer tok")
        self.assertIn("pageToken=p2", request.full_url)
        self.assertIn("supportsAllDrives=true", request.full_url)
        self.assertIn("includeItemsFromAllDrives=true", request.full_url)

    def test_network_error_is_transient(self) -> None:
        opener = Mock()
        opener.open.side_effect = URLError("down")
        with self.assertRaises(TransientError):
            self._transport(opener).get("abc")

    def test_http_error_is_classified(self) -> None:
        opener = Mock()
        opener.open.side_effect = _http_error(404)
        with self.assertRaises(RemotePermissionError):
            self._transport(opener).get_media("abc")

    def test_invalid_json_is_malformed(self) -> None:
        opener = Mock()
        opener.open.return_value = io.BytesIO(b"<html>")
        with self.assertRaises(MalformedResponseError):
            self._transport(opener).get("abc")

    def test_missing_token(self) -> None:
        auth = StaticTokenAuthenticator("  ")
        self.assertFalse(auth.is_complete())
        with self.assertRaises(RuntimeError):
            auth()


class _TruncatedResponse(io.BytesIO):
    """Response whose body ends before Content-Length bytes arrive."""

    def read(self, *args):
        raise http.client.IncompleteRead(b'{"files": [', 489)


class TestDriveHttpTransportNetworkFailures(unittest.TestCase):
    def _transport(self, opener: Mock) -> DriveHttpTransport:
        transport = DriveHttpTransport(StaticTokenAuthenticator("tok"))
        transport._opener = opener
        return transport

    def test_truncated_body_is_transient(self) -> None:
        opener = Mock()
        opener.open.return_value = _TruncatedResponse()
        with self.assertRaises(TransientError):
            self._transport(opener).list_page("abc")

    def test_protocol_and_tls_errors_are_transient(self) -> None:
        for error in (http.client.BadStatusLine("garbage"), ssl.SSLError("bad record mac"), OSError("reset")):
            opener = Mock()
            opener.open.side_effect = error
            with self.subTest(error=type(error).__name__):
                with self.assertRaises(TransientError):
                    self._transport(opener).get("abc")

    def test_truncated_listing_is_retried_by_the_client(self) -> None:
        opener = Mock()
        folder = {
            "id": "abc",
            "name": "Root",
            "mimeType": "application/vnd.google-apps.folder",
            "modifiedTime": "2024-01-02T03:04:05.000Z",
        }
        opener.open.side_effect = [
            _TruncatedResponse(),
            io.BytesIO(b'{"files": []}'),
            io.BytesIO(json.dumps(folder).encode("utf-8")),
        ]
        client = RemoteClient(
            self._transport(opener),
            limiter=RequestLimiter(throttle=Throttle(ThrottleConfig(enabled=False))),
            listing_retry=RetryConfig(max_retries=2),
        )

        with self.assertLogs("src.harvester.net.retry", level="WARNING"):
            items = asyncio.run(client.list_children("abc"))

        self.assertEqual(items, [])
        self.assertEqual(opener.open.call_count, 3)


if __name__ == "__main__":
    unittest.main()
