"""Opt-in logging of PostgREST sink requests (PT_LOG_REQUESTS=true)."""

import json
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

_CREDENTIAL_HEADERS = {"authorization", "cookie", "apikey", "x-api-key"}

QueryParams = list[tuple[str, Any]]


def should_log_requests() -> bool:
    """Check if request logging is enabled via PT_LOG_REQUESTS environment variable."""
    return os.getenv("PT_LOG_REQUESTS", "").lower() == "true"


def _query_string(params: QueryParams | None) -> str:
    # Filter order is significant for repeated columns, keep it as sent
    if not params:
        return ""
    return "?" + "&".join(f"{column}={value}" for column, value in params)


def _describe_payload(payload: Any) -> str:
    if isinstance(payload, list):
        noun = "record" if len(payload) == 1 else "records"
        label = f"Payload ({len(payload)} {noun})"
    else:
        label = "Payload (1 record)" if isinstance(payload, dict) else "Payload"
    try:
        rendered = json.dumps(payload, indent=2, default=str)
    except (TypeError, ValueError):
        rendered = str(payload)
    return f"{label}: {rendered}"


def log_sink_request(
    method: str,
    collection: str,
    url: str,
    params: QueryParams | None = None,
    headers: dict[str, str] | None = None,
    payload: Any = None,
) -> None:
    """Log one sink request if PT_LOG_REQUESTS is enabled.

    The first line names the collection and the full request URL. The Prefer
    header gets its own line since it decides insert, upsert or count
    semantics. Credential headers are redacted.
    """
    if not should_log_requests():
        return

    lines = [f"{method} {collection} -> {url}{_query_string(params)}"]

    if headers:
        prefer = next((v for k, v in headers.items() if k.lower() == "prefer"), None)
        if prefer:
            lines.append(f"Prefer: {prefer}")
        shown = {
            k: "***REDACTED***" if k.lower() in _CREDENTIAL_HEADERS else v
            for k, v in headers.items()
            if k.lower() != "prefer"
        }
        lines.append(f"Headers: {json.dumps(shown, sort_keys=True)}")

    if payload is not None:
        lines.append(_describe_payload(payload))

    logger.info("Sink request:\n" + "\n".join(lines))
