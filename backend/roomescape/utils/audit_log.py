from __future__ import annotations

import json
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Literal, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "reservation.created",
    "reservation.cancelled",
    "reservation.promoted",
    "waiting.created",
    "waiting.cancelled",
]
AuditInitiator = Literal["member", "admin", "system"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (date, time)):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    member_id: Optional[int],
    reservation_id: Optional[int] = None,
    waiting_id: Optional[int] = None,
    theme_id: Optional[int] = None,
    slot_date: Optional[date] = None,
    start_at: Optional[time] = None,
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit structured JSON audit log. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "member_id": member_id,
        "reservation_id": reservation_id,
        "waiting_id": waiting_id,
        "theme_id": theme_id,
        "date": _to_str(slot_date),
        "start_at": _to_str(start_at),
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update({key: _to_str(value) if isinstance(value, (date, time)) else value for key, value in extra.items()})

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except (TypeError, ValueError) as exc:
        raise RuntimeError("failed to emit audit log") from exc
