"""
Interpretation of BitPay response bodies.

A response body takes one of a handful of shapes:

* a bare JSON array (some list endpoints, e.g. ``/ledgers/{currency}``),
* ``{"error": "..."}``,
* ``{"errors": [{"error": "...", "param": "..."}, ...]}``,
* ``{"data": ...}``, the normal success envelope,
* something that is not JSON at all (HTML error pages, proxies, ...).

:func:`classify_response` turns the raw text into a tagged
:class:`Envelope`; :func:`parse_response` then either returns the payload or
raises the matching error.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, TypeVar

from .errors import ProtocolError, RemoteError, TransportError

__all__ = [
    "Envelope",
    "EnvelopeKind",
    "classify_response",
    "parse_response",
]

T = TypeVar("T")


class EnvelopeKind(enum.Enum):
    ARRAY_ROOT = "array_root"
    ERROR_SINGLE = "error_single"
    ERROR_LIST = "error_list"
    DATA_WRAPPED = "data_wrapped"
    UNPARSEABLE = "unparseable"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class Envelope:
    kind: EnvelopeKind
    payload: Any = None
    messages: List[str] = field(default_factory=list)
    parse_error: Optional[Exception] = None


def _message_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _errors_list_messages(items: Any) -> List[str]:
    if not isinstance(items, list):
        return [_message_text(items)]
    messages: List[str] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        error = item.get("error")
        text = "" if error is None else _message_text(error)
        param = item.get("param")
        if param is not None:
            text = f"{text} {_message_text(param)}".strip()
        messages.append(text)
    return messages


def classify_response(body: str) -> Envelope:
    stripped = body.lstrip()
    if stripped.startswith("["):
        # Decoded wholesale; elements are never inspected for envelope keys.
        try:
            return Envelope(EnvelopeKind.ARRAY_ROOT, payload=json.loads(body))
        except ValueError as exc:
            return Envelope(EnvelopeKind.UNPARSEABLE, parse_error=exc)

    try:
        decoded = json.loads(body)
    except ValueError as exc:
        return Envelope(EnvelopeKind.UNPARSEABLE, parse_error=exc)
    if not isinstance(decoded, dict):
        return Envelope(
            EnvelopeKind.UNPARSEABLE,
            parse_error=ValueError(
                f"Expected a JSON object, got {type(decoded).__name__}"
            ),
        )

    if "error" in decoded:
        return Envelope(
            EnvelopeKind.ERROR_SINGLE,
            messages=[_message_text(decoded["error"])],
        )
    if "errors" in decoded:
        return Envelope(
            EnvelopeKind.ERROR_LIST,
            messages=_errors_list_messages(decoded["errors"]),
        )
    if "data" in decoded:
        return Envelope(EnvelopeKind.DATA_WRAPPED, payload=decoded["data"])
    return Envelope(EnvelopeKind.UNCLASSIFIED, payload=decoded)


def _write_debug(value: Any) -> None:
    if not logging.getLogger().isEnabledFor(logging.DEBUG):
        return
    try:
        logging.debug("BitPay response: %s", json.dumps(value, default=repr))
    except Exception:  # noqa: BLE001
        pass


def parse_response(
    body: str,
    http_ok: bool,
    *,
    into: Optional[Callable[[Any], T]] = None,
    status_code: Optional[int] = None,
) -> T:
    """
    Return the payload of ``body`` converted with ``into``, or raise.

    ``into`` receives the decoded JSON (the whole array for array-rooted
    bodies, the ``data`` member otherwise). It defaults to returning the
    decoded value untouched.
    """
    envelope = classify_response(body)
    convert = into if into is not None else (lambda value: value)

    if envelope.kind in (EnvelopeKind.ARRAY_ROOT, EnvelopeKind.DATA_WRAPPED):
        result = convert(envelope.payload)
        _write_debug(envelope.payload)
        return result

    if envelope.kind in (EnvelopeKind.ERROR_SINGLE, EnvelopeKind.ERROR_LIST):
        error = RemoteError(*envelope.messages)
        _write_debug(error.errors)
        raise error

    if envelope.kind is EnvelopeKind.UNPARSEABLE:
        if not http_ok:
            raise TransportError(
                f"HTTP {status_code}: {body}" if status_code is not None else body,
                status_code=status_code,
                body=body,
            ) from envelope.parse_error
        raise ProtocolError(
            f"Error: response could not be parsed - {envelope.parse_error}"
        ) from envelope.parse_error

    raise ProtocolError(
        "Error: response has neither a data member nor an error description"
    )
