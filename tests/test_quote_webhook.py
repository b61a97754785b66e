from __future__ import annotations

import json
import unittest

import httpx

from quote_session import BuildConfig, ContactInfo, QuoteSession, evaluate_build
from quote_webhook import QuoteWebhookError, post_quote_request, submit_quote_request

HOOK_URL = "https://hooks.example.test/quote"


def _ready_session() -> QuoteSession:
    session = QuoteSession(
        contact=ContactInfo(first="Ada", last="Lovelace", email="ada@example.com", phone="555-0100", zip="97201")
    )
    session.add_to_quote(evaluate_build(BuildConfig()))
    session.drain_notices()
    return session


class _Recorder:
    def __init__(self, status_code: int = 200, error: bool = False) -> None:
        self.status_code = status_code
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})


def _client(recorder: _Recorder) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(recorder))


class TestPostQuoteRequest(unittest.TestCase):
    def test_posts_json_body(self) -> None:
        recorder = _Recorder(201)
        with _client(recorder) as client:
            result = post_quote_request(HOOK_URL, {"source": "x", "items": []}, client=client)
        self.assertTrue(result.posted)
        self.assertEqual(result.status_code, 201)
        (req,) = recorder.requests
        self.assertEqual(req.method, "POST")
        self.assertEqual(str(req.url), HOOK_URL)
        self.assertEqual(req.headers["content-type"], "application/json")
        self.assertEqual(json.loads(req.content), {"source": "x", "items": []})

    def test_non_2xx_raises(self) -> None:
        with _client(_Recorder(502)) as client:
            with self.assertRaises(QuoteWebhookError) as ctx:
                post_quote_request(HOOK_URL, {}, client=client)
        self.assertEqual(str(ctx.exception), "Webhook error 502")

    def test_transport_error_raises_with_message(self) -> None:
        with _client(_Recorder(error=True)) as client:
            with self.assertRaises(QuoteWebhookError) as ctx:
                post_quote_request(HOOK_URL, {}, client=client)
        self.assertIn("connection refused", str(ctx.exception))

    def test_malformed_url_raises_webhook_error(self) -> None:
        recorder = _Recorder(200)
        with _client(recorder) as client:
            with self.assertRaises(QuoteWebhookError):
                post_quote_request("https://hooks.example.test/q\x00x", {}, client=client)
        self.assertEqual(recorder.requests, [])


class TestSubmitQuoteRequest(unittest.TestCase):
    def test_success_sends_payload_once(self) -> None:
        session = _ready_session()
        recorder = _Recorder(200)
        with _client(recorder) as client:
            ok = submit_quote_request(session, url=HOOK_URL, client=client)
        self.assertTrue(ok)
        self.assertEqual(len(recorder.requests), 1)
        body = json.loads(recorder.requests[0].content)
        self.assertEqual(body["source"], "tote-builder-v1")
        self.assertEqual(body["estimate"], 950)
        self.assertEqual(len(body["items"]), 1)
        (notice,) = session.drain_notices()
        self.assertEqual(notice.title, "Request sent")

    def test_failure_keeps_quote_state(self) -> None:
        session = _ready_session()
        items_before = list(session.items)
        recorder = _Recorder(500)
        with _client(recorder) as client:
            ok = submit_quote_request(session, url=HOOK_URL, client=client)
        self.assertFalse(ok)
        # No retry.
        self.assertEqual(len(recorder.requests), 1)
        self.assertEqual(session.items, items_before)
        (notice,) = session.drain_notices()
        self.assertEqual(notice.title, "Submit failed")
        self.assertEqual(notice.description, "Webhook error 500")

    def test_malformed_url_becomes_submit_failed_notice(self) -> None:
        session = _ready_session()
        ok = submit_quote_request(session, url="https://hooks.example.test/q\x00x")
        self.assertFalse(ok)
        self.assertEqual(len(session.items), 1)
        (notice,) = session.drain_notices()
        self.assertEqual(notice.title, "Submit failed")
        self.assertTrue(notice.description)

    def test_missing_contact_never_hits_network(self) -> None:
        session = _ready_session()
        session.contact = ContactInfo(first="Ada")
        recorder = _Recorder(200)
        with _client(recorder) as client:
            ok = submit_quote_request(session, url=HOOK_URL, client=client)
        self.assertFalse(ok)
        self.assertEqual(recorder.requests, [])
        (notice,) = session.drain_notices()
        self.assertEqual(notice.title, "Missing info")

    def test_empty_list_never_hits_network(self) -> None:
        session = _ready_session()
        session.remove_item(session.items[0].id)
        recorder = _Recorder(200)
        with _client(recorder) as client:
            ok = submit_quote_request(session, url=HOOK_URL, client=client)
        self.assertFalse(ok)
        self.assertEqual(recorder.requests, [])
        (notice,) = session.drain_notices()
        self.assertEqual(notice.title, "No items")

    def test_without_url_payload_is_logged(self) -> None:
        session = _ready_session()
        with self.assertLogs("quote_webhook", level="INFO") as logs:
            ok = submit_quote_request(session, url="  ")
        self.assertTrue(ok)
        self.assertTrue(any("QUOTE_REQUEST_PAYLOAD" in line for line in logs.output))
        (notice,) = session.drain_notices()
        self.assertEqual(notice.title, "Request sent")


if __name__ == "__main__":
    unittest.main()
