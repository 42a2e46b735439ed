# rental_search/extraction/traffic.py

"""Reading API payloads out of the browser's captured network traffic.

Chrome's performance log holds one JSON-encoded DevTools event per
entry.  Only ``Network.responseReceived`` events for JSON responses
from the wanted endpoint are kept; their bodies are then fetched over
the DevTools bridge while the browser still has them in memory.
"""

import base64
import json
import logging
import time
from typing import Any

from rental_search.browser.session import BrowsingSession
from rental_search.config.settings import Settings
from rental_search.errors import TrafficCaptureEmpty

logger = logging.getLogger("rental_search.extraction")


def poll_network_log(
    session: BrowsingSession,
    attempts: int = Settings.LOG_POLL_ATTEMPTS,
    delay: float = Settings.LOG_POLL_DELAY,
) -> list[dict[str, Any]]:
    """Read the network log until it has entries.

    Raises:
        TrafficCaptureEmpty: Still nothing after ``attempts`` reads.
    """
    for attempt in range(1, attempts + 1):
        entries = session.capture_network_log()
        if entries:
            logger.debug(
                "Captured %d log entries on read %d", len(entries), attempt
            )
            return entries
        if attempt < attempts:
            time.sleep(delay)
    raise TrafficCaptureEmpty(
        f"Network log still empty after {attempts} reads"
    )


def _response_event(entry: dict[str, Any]) -> dict[str, Any] | None:
    """Return the event params of a ``Network.responseReceived`` entry."""
    message = entry.get("message")
    if isinstance(message, str):
        try:
            message = json.loads(message)
        except json.JSONDecodeError:
            return None
    if not isinstance(message, dict):
        return None
    event = message.get("message", message)
    if not isinstance(event, dict):
        return None
    if event.get("method") != "Network.responseReceived":
        return None
    params = event.get("params")
    return params if isinstance(params, dict) else None


def matching_request_ids(
    entries: list[dict[str, Any]], url_fragment: str,
) -> list[str]:
    """Request ids of JSON responses whose URL contains ``url_fragment``."""
    request_ids: list[str] = []
    for entry in entries:
        params = _response_event(entry)
        if params is None:
            continue
        response = params.get("response") or {}
        mime_type = str(response.get("mimeType", ""))
        url = str(response.get("url", ""))
        request_id = params.get("requestId")
        if "json" in mime_type and url_fragment in url and request_id:
            request_ids.append(str(request_id))
    return list(dict.fromkeys(request_ids))


def extract_json_responses(
    session: BrowsingSession,
    entries: list[dict[str, Any]],
    url_fragment: str,
) -> list[dict[str, Any]]:
    """Fetch and decode the bodies of the matching responses.

    Bodies that are gone from the browser cache or are not JSON
    objects are skipped.
    """
    payloads: list[dict[str, Any]] = []
    for request_id in matching_request_ids(entries, url_fragment):
        try:
            reply = session.run_debug_command(
                "Network.getResponseBody", {"requestId": request_id}
            )
            body = reply.get("body", "")
            if reply.get("base64Encoded"):
                body = base64.b64decode(body).decode("utf-8")
            payload = json.loads(body)
        except Exception as exc:
            logger.debug(
                "Skipping response %s: %s", request_id, exc
            )
            continue
        if isinstance(payload, dict):
            payloads.append(payload)
    logger.debug(
        "Decoded %d '%s' payloads from %d log entries",
        len(payloads),
        url_fragment,
        len(entries),
    )
    return payloads
