# =============================================
# File: storefront/utils/slog.py
# Purpose: One JSON line per request / notable event on the "storefront" logger
# =============================================
from __future__ import annotations
import hashlib
import json
import logging
import os
import uuid
from typing import Any, Dict

from storefront.utils.text import normalize

_LOGGER_NAME = "storefront"

# Fields owned by the middleware; router context may not overwrite them
_CORE_FIELDS = frozenset({"event", "request_id", "method", "path", "status", "latency_ms", "tenant"})

_logger = logging.getLogger(_LOGGER_NAME)
if not _logger.handlers:
    _logger.setLevel(getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_handler)
    _logger.propagate = True  # pytest caplog listens on the root logger


def qhash(text: str) -> str:
    """10-char digest of the normalised query, so search terms never reach the logs."""
    return hashlib.sha256(normalize(text).encode("utf-8")).hexdigest()[:10]


def new_request_id() -> str:
    return uuid.uuid4().hex


def _emit(level: int, payload: Dict[str, Any]) -> None:
    _logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def log_event(event: str, **fields: Any) -> None:
    _emit(logging.INFO, {"event": event, **fields})


def finalize_request_log(
    request_id: str,
    method: str,
    path: str,
    status: int,
    latency_ms: int,
    client_ip: str | None,
    tenant: str | None = None,
    ctx: Dict[str, Any] | None = None,
) -> None:
    """
    Emit "request.completed". Router context (cache_hit, error_kind, qhash,
    user_id...) is merged in; 5xx responses are logged at WARNING.
    """
    payload: Dict[str, Any] = {
        "event": "request.completed",
        "request_id": request_id,
        "method": method,
        "path": path,
        "status": status,
        "latency_ms": latency_ms,
        "client_ip": client_ip or "",
        "tenant": tenant or "default",
    }
    for k, v in (ctx or {}).items():
        if k not in _CORE_FIELDS:
            payload[k] = v
    _emit(logging.WARNING if status >= 500 else logging.INFO, payload)
