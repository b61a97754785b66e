from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

import httpx

from quote_session import QuoteRequestError, QuoteSession

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0


class QuoteWebhookError(RuntimeError):
    pass


@dataclass(frozen=True)
class WebhookResult:
    # 0 when no URL is configured and the payload was only logged.
    status_code: int
    posted: bool


def post_quote_request(
    url: str,
    payload: Mapping[str, Any],
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> WebhookResult:
    """
    POST the quote request JSON once. No retry; any non-2xx status is a failure.

    Pass `client` to reuse a connection pool (or a mock transport in tests).
    """
    try:
        if client is not None:
            resp = client.post(url, json=dict(payload), timeout=timeout)
        else:
            resp = httpx.post(url, json=dict(payload), timeout=timeout)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("quote webhook POST failed: %s", exc)
        raise QuoteWebhookError(str(exc) or type(exc).__name__) from exc

    if not resp.is_success:
        logger.warning("quote webhook rejected request", extra={"status_code": resp.status_code})
        raise QuoteWebhookError(f"Webhook error {resp.status_code}")

    logger.info("quote webhook accepted request", extra={"status_code": resp.status_code})
    return WebhookResult(status_code=resp.status_code, posted=True)


def submit_quote_request(
    session: QuoteSession,
    *,
    url: str,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_S,
    now: Optional[datetime] = None,
) -> bool:
    """
    Validate, send and report the session's quote request.

    Outcomes are queued on the session as notices. Local validation failures never touch the
    network. The quote list is left untouched on every path so the visitor can retry.
    """
    try:
        session.validate_request()
    except QuoteRequestError as exc:
        session.notify(exc.title, exc.description)
        return False

    payload = session.build_request_payload(now=now)
    url = (url or "").strip()
    try:
        if url:
            post_quote_request(url, payload, client=client, timeout=timeout)
        else:
            logger.info("QUOTE_REQUEST_PAYLOAD %s", json.dumps(payload))
    except QuoteWebhookError as exc:
        session.notify("Submit failed", str(exc) or "Please try again.")
        return False

    session.notify("Request sent", "We got it. We'll follow up with a custom quote.")
    return True
