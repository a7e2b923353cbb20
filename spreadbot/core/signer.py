"""HMAC-SHA256 request signing for private exchange endpoints."""

import base64
import hashlib
import hmac
import json
from typing import Any, Dict, Optional, Union

from .types import SignedRequest
from .utils import now_ms


def sign(secret: str, timestamp_ms: Union[int, str], method: str, path: str, body: str = "") -> str:
    """Sign ``timestamp + method + path + body`` with the API secret.

    ``method`` is the literal HTTP verb and ``path`` the request path with its
    leading slash and without a query string. ``body`` must be the exact string
    that goes on the wire.
    """
    message = f"{timestamp_ms}{method}{path}{body}"
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def serialize_body(payload: Optional[Union[Dict[str, Any], str]]) -> str:
    """Serialize a request body once, compactly."""
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, separators=(",", ":"))


def build_signed_request(secret: str, method: str, path: str,
                         payload: Optional[Union[Dict[str, Any], str]] = None,
                         timestamp_ms: Optional[int] = None) -> SignedRequest:
    """Serialize the body and sign exactly that string."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    method = method.upper()
    body_json = serialize_body(payload)
    return SignedRequest(
        timestamp_ms=timestamp_ms,
        method=method,
        path=path,
        body_json=body_json,
        signature=sign(secret, timestamp_ms, method, path, body_json),
    )


def auth_headers(signed: SignedRequest, api_key: str, passphrase: str,
                 receive_window_ms: int = 5000) -> Dict[str, str]:
    """Headers for an authenticated Bitget request."""
    return {
        "Content-Type": "application/json",
        "ACCESS-KEY": api_key,
        "ACCESS-SIGN": signed.signature,
        "ACCESS-TIMESTAMP": str(signed.timestamp_ms),
        "ACCESS-PASSPHRASE": passphrase,
        "locale": "en-US",
        "x-bg-rec-window": str(receive_window_ms),
    }
