"""Trace ids attached to backend requests as ``X-Trace-ID``."""

from __future__ import annotations

import re
import uuid
from typing import Optional

_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]+")
_SEPARATORS_RE = re.compile(r"[/\-_]+")
MAX_ROUTE_LENGTH = 20


def sanitize_route(route: str) -> str:
    cleaned = route.lstrip("/")
    if cleaned.startswith("api/"):
        cleaned = cleaned[len("api/"):]
    cleaned = _ADDRESS_RE.sub("", cleaned)
    cleaned = _SEPARATORS_RE.sub("", cleaned).lower()
    return cleaned[:MAX_ROUTE_LENGTH]


def generate_trace_id(method: str, route: str, user_address: Optional[str] = None) -> str:
    """``<method>-<route>-<last 6 of address>-<8 random hex>``.

    >>> generate_trace_id("GET", "/api/jobs/user/0x12ab", "0x1234567890abcdef").rsplit("-", 1)[0]
    'get-jobsuser-abcdef'
    """
    suffix = user_address.lower()[-6:] if user_address else "000000"
    randomness = uuid.uuid4().hex[:8]
    return f"{method.lower()}-{sanitize_route(route)}-{suffix}-{randomness}"
