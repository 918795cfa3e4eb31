"""Request metadata helpers."""
from __future__ import annotations

from typing import Optional

from streamlit.runtime.scriptrunner import get_script_run_ctx

_CLIENT_IP_HEADERS = ("X-Real-IP", "CF-Connecting-IP", "Remote-Addr")


def get_client_ip() -> Optional[str]:
    """Visitor address from proxy headers, if the Streamlit context exposes them."""

    ctx = get_script_run_ctx()
    headers = getattr(ctx, "request_headers", None) if ctx else None
    if not headers:
        return None

    forwarded_for = headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or None
    for header_key in _CLIENT_IP_HEADERS:
        candidate = headers.get(header_key)
        if candidate:
            return candidate.strip()
    return None


__all__ = ["get_client_ip"]
