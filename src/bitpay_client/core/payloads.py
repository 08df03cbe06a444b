"""
Helpers for constructing the JSON bodies sent to the BitPay API.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlencode

from .tokens import Facade, PairingCode

__all__ = [
    "DEFAULT_LABEL",
    "build_invoice_payload",
    "build_pairing_completion",
    "build_pairing_request",
    "build_query",
    "format_date",
]

DEFAULT_LABEL = "DEFAULT"


def _new_guid() -> str:
    return str(uuid.uuid4())


def build_pairing_request(
    sin: str,
    facade: Facade,
    *,
    label: Optional[str] = None,
    guid: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Body of a ``POST /tokens`` asking the server for a new pairing code.
    """
    return {
        "id": sin,
        "guid": guid or _new_guid(),
        "facade": str(facade),
        "count": 1,
        "label": label or DEFAULT_LABEL,
    }


def build_pairing_completion(
    sin: str,
    pairing_code: Union[PairingCode, str],
    *,
    guid: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Body of a ``POST /tokens`` that claims the tokens behind an existing code.
    """
    return {
        "id": sin,
        "guid": guid or _new_guid(),
        "pairingCode": str(pairing_code),
        "label": DEFAULT_LABEL,
    }


def build_invoice_payload(
    invoice: Mapping[str, Any],
    token: str,
    *,
    guid: Optional[str] = None,
) -> Dict[str, Any]:
    payload = dict(invoice)
    payload["token"] = token
    payload["guid"] = guid or _new_guid()
    return payload


def format_date(value: Union[date, datetime]) -> str:
    """Invariant-culture short date, e.g. ``03/07/2018``."""
    return value.strftime("%m/%d/%Y")


def build_query(parameters: Mapping[str, Any]) -> str:
    present = {key: value for key, value in parameters.items() if value is not None}
    if not present:
        return ""
    return "?" + urlencode(present, safe="/")
