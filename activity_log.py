"""Firestore-backed audit trail of storyteller actions."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Mapping, MutableMapping, Sequence

from google.cloud import firestore

from google_credentials import get_service_account_credentials

_LOGGER = logging.getLogger(__name__)

ACTIVITY_LOG_ENABLED = (os.getenv("ACTIVITY_LOG_ENABLED", "true").strip().lower() not in {"0", "false", "no"})
_ACTIVITY_COLLECTION_RAW = os.getenv("FIRESTORE_ACTIVITY_COLLECTION", "campfire_activity").strip()
ACTIVITY_LOG_COLLECTION = _ACTIVITY_COLLECTION_RAW or "campfire_activity"

GCP_PROJECT_ID = (os.getenv("GCP_PROJECT_ID") or "").strip() or None

_PARAM_SLOTS = 4

_ACTIVITY_LOG_ACTIVE = False
_ACTIVITY_DISABLE_REASON: str | None = None


@dataclass(slots=True)
class ActivityLogEntry:
    id: str
    type: str
    action: str
    result: str
    user_id: str | None
    timestamp: datetime
    params: tuple[str | None, ...]
    metadata: Mapping[str, Any] | None


def _project_id() -> str | None:
    if GCP_PROJECT_ID:
        return GCP_PROJECT_ID
    credentials = get_service_account_credentials()
    return getattr(credentials, "project_id", None) if credentials else None


@lru_cache(maxsize=1)
def _get_firestore_client():
    project_id = _project_id()
    if not project_id:
        raise RuntimeError("Set GCP_PROJECT_ID or provide service-account credentials for activity logging.")
    client_kwargs: MutableMapping[str, Any] = {"project": project_id}
    credentials = get_service_account_credentials()
    if credentials is not None:
        client_kwargs["credentials"] = credentials
    return firestore.Client(**client_kwargs)


def _get_activity_collection():
    return _get_firestore_client().collection(ACTIVITY_LOG_COLLECTION)


def _disable_logging(reason: str) -> None:
    global _ACTIVITY_LOG_ACTIVE, _ACTIVITY_DISABLE_REASON
    if _ACTIVITY_LOG_ACTIVE:
        _LOGGER.warning("Disabling activity logging: %s", reason)
    _ACTIVITY_LOG_ACTIVE = False
    _ACTIVITY_DISABLE_REASON = reason


def init_activity_log() -> None:
    """Check Firestore access once; logging stays off if anything is missing."""

    global _ACTIVITY_LOG_ACTIVE, _ACTIVITY_DISABLE_REASON
    if not ACTIVITY_LOG_ENABLED:
        _disable_logging("ACTIVITY_LOG_ENABLED is false")
        return

    try:
        list(_get_activity_collection().limit(1).stream())
    except Exception as exc:  # pragma: no cover - surfaced through get_activity_logging_status
        _disable_logging(str(exc))
        return

    _ACTIVITY_LOG_ACTIVE = True
    _ACTIVITY_DISABLE_REASON = None
    _LOGGER.debug("Activity logging enabled using Firestore collection '%s'", ACTIVITY_LOG_COLLECTION)


def is_activity_logging_enabled() -> bool:
    return _ACTIVITY_LOG_ACTIVE


def get_activity_logging_status() -> tuple[bool, str | None]:
    return _ACTIVITY_LOG_ACTIVE, _ACTIVITY_DISABLE_REASON


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _normalize_result(result: str) -> str:
    normalized = (_clean(result) or "").lower()
    return "fail" if normalized in {"", "fail", "failure", "error"} else "success"


def log_event(
    *,
    type: str,
    action: str,
    result: str,
    user_id: str | None,
    params: Sequence[Any] | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> ActivityLogEntry | None:
    """Write one event; returns ``None`` when logging is off or the write fails."""

    if not _ACTIVITY_LOG_ACTIVE:
        return None

    padded = [_clean(value) for value in list(params or [])[:_PARAM_SLOTS]]
    padded += [None] * (_PARAM_SLOTS - len(padded))

    now = datetime.now(timezone.utc)
    payload: MutableMapping[str, Any] = {
        "type": _clean(type) or "unknown",
        "action": _clean(action) or "unknown",
        "result": _normalize_result(result),
        "user_id": _clean(user_id),
        "timestamp": now,
        "timestamp_iso": now.isoformat(),
    }
    for index, value in enumerate(padded, start=1):
        payload[f"param{index}"] = value
    if metadata:
        payload["metadata"] = dict(metadata)

    try:
        doc_ref = _get_activity_collection().document()
        doc_ref.set(payload)
    except Exception as exc:  # pragma: no cover - Firestore write failure
        _disable_logging(str(exc))
        _LOGGER.warning("Failed to log activity event (%s: %s): %s", type, action, exc)
        return None

    return ActivityLogEntry(
        id=str(getattr(doc_ref, "id", "")),
        type=payload["type"],
        action=payload["action"],
        result=payload["result"],
        user_id=payload["user_id"],
        timestamp=now,
        params=tuple(padded),
        metadata=dict(metadata) if metadata else None,
    )


__all__ = [
    "ACTIVITY_LOG_COLLECTION",
    "ACTIVITY_LOG_ENABLED",
    "ActivityLogEntry",
    "get_activity_logging_status",
    "init_activity_log",
    "is_activity_logging_enabled",
    "log_event",
]
