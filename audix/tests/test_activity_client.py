from __future__ import annotations

import http.client
import io
import json
import unittest
import urllib.error
from unittest import mock

from audix.client.activity_client import ActivityClient, ActivityClientError
from audix.client.flush_queue import FlushQueue
from audix.client.session_timer import PlayEvent


def _response(raw: bytes) -> mock.MagicMock:
    response = mock.MagicMock()
    response.__enter__.return_value.read.return_value = raw
    return response


def _http_error(code: int, body: dict | None = None) -> urllib.error.HTTPError:
    raw = json.dumps(body).encode() if body is not None else b""
    return urllib.error.HTTPError("http://api/activity/log", code, "error", {}, io.BytesIO(raw))


class ActivityClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.client = ActivityClient("http://api.example/api/", token="tok")

    def test_log_play_sends_json_with_bearer_token(self) -> None:
        body = {"message": "Activity updated", "activity": {"playCount": 1}}
        with mock.patch("urllib.request.urlopen", return_value=_response(json.dumps(body).encode())) as urlopen:
            result = self.client.log_play("s1", 30)

        request = urlopen.call_args.args[0]
        self.assertEqual(result, body)
        self.assertEqual(request.full_url, "http://api.example/api/activity/log")
        self.assertEqual(request.get_method(), "POST")
        self.assertEqual(request.get_header("Authorization"), "Bearer tok")
        self.assertEqual(json.loads(request.data), {"songId": "s1", "playDuration": 30})

    def test_get_all(self) -> None:
        with mock.patch("urllib.request.urlopen", return_value=_response(b'{"mostPlayed": []}')) as urlopen:
            self.assertEqual(self.client.get_all(), {"mostPlayed": []})

        self.assertEqual(urlopen.call_args.args[0].full_url, "http://api.example/api/activity/all")

    def test_server_errors_are_retriable(self) -> None:
        for code in (500, 503, 429):
            with self.subTest(code=code):
                with mock.patch("urllib.request.urlopen", side_effect=_http_error(code)):
                    with self.assertRaises(ActivityClientError) as ctx:
                        self.client.get_summary()
                self.assertTrue(ctx.exception.retriable)
                self.assertEqual(ctx.exception.status, code)

    def test_client_errors_are_permanent(self) -> None:
        error = _http_error(404, {"detail": "Song not found"})
        with mock.patch("urllib.request.urlopen", side_effect=error):
            with self.assertRaises(ActivityClientError) as ctx:
                self.client.log_play("gone", 30)

        self.assertFalse(ctx.exception.retriable)
        self.assertEqual(str(ctx.exception), "Song not found")

    def test_auth_errors(self) -> None:
        with mock.patch("urllib.request.urlopen", side_effect=_http_error(401)):
            with self.assertRaises(ActivityClientError) as ctx:
                self.client.get_all()

        self.assertTrue(ctx.exception.is_auth_error)
        self.assertFalse(ctx.exception.retriable)

    def test_network_failure_is_retriable(self) -> None:
        with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("refused")):
            with self.assertRaises(ActivityClientError) as ctx:
                self.client.get_recent()

        self.assertTrue(ctx.exception.retriable)
        self.assertIsNone(ctx.exception.status)

    def test_truncated_body_is_retriable(self) -> None:
        response = mock.MagicMock()
        response.__enter__.return_value.read.side_effect = http.client.IncompleteRead(b'{"mess')

        with mock.patch("urllib.request.urlopen", return_value=response):
            with self.assertRaises(ActivityClientError) as ctx:
                self.client.log_play("s1", 30)

        self.assertTrue(ctx.exception.retriable)

    def test_flush_queue_retries_truncated_delivery(self) -> None:
        truncated = mock.MagicMock()
        truncated.__enter__.return_value.read.side_effect = http.client.IncompleteRead(b"")
        ok = _response(b'{"message": "Activity updated"}')
        waits: list[float] = []
        flush_queue = FlushQueue(
            lambda event: self.client.log_play(event.song_id, event.play_duration),
            wait=lambda delay: waits.append(delay) or False,
        )
        flush_queue.enqueue(PlayEvent("s1", 30))

        with mock.patch("urllib.request.urlopen", side_effect=[truncated, ok]):
            self.assertEqual(flush_queue.process_pending(), 1)

        self.assertEqual(waits, [0.5])
        self.assertEqual(flush_queue.dropped, 0)

    def test_invalid_json_is_retriable(self) -> None:
        with mock.patch("urllib.request.urlopen", return_value=_response(b"<html>")):
            with self.assertRaises(ActivityClientError) as ctx:
                self.client.get_top_artists()

        self.assertTrue(ctx.exception.retriable)

    def test_guest_client(self) -> None:
        self.assertFalse(ActivityClient("http://api.example", token=None).is_authenticated)
        self.assertTrue(self.client.is_authenticated)


if __name__ == "__main__":
    unittest.main()
