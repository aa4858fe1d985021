import json
from pathlib import Path
import contextvars
from typing import Any, Dict, Optional

from ..config import get_settings

# Empty EVENT_LOG_PATH disables the log.
_configured = get_settings().event_log_path
_LOG_PATH: Optional[Path] = Path(_configured) if _configured else None

_current_update_id: contextvars.ContextVar[Optional[int]] = contextvars.ContextVar(
    "current_update_id", default=None
)


def set_log_path(path: Optional[str | Path]) -> None:
    """Override the log file path (useful for tests); None disables logging."""
    global _LOG_PATH
    _LOG_PATH = Path(path) if path else None


def get_log_path() -> Optional[Path]:
    """Return the current log file path."""
    return _LOG_PATH


def set_update_id(update_id: Optional[int]) -> None:
    """Set the inbound update identifier for subsequent events."""
    _current_update_id.set(update_id)


def log_event(event: str, data: Dict[str, Any], *, update_id: Optional[int] = None) -> None:
    """Append an event to the log as a JSON line.

    Parameters
    ----------
    event:
        Type of the event (e.g., "extraction", "slots_saved").
    data:
        Arbitrary JSON-serializable payload.
    update_id:
        Optional explicit update identifier. If omitted, the one set via
        :func:`set_update_id` is used.
    """
    if _LOG_PATH is None:
        return
    uid = update_id if update_id is not None else _current_update_id.get()
    record = {"update_id": uid, "event": event, **data}
    _LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
    with _LOG_PATH.open("a", encoding="utf-8") as f:
        json.dump(record, f, ensure_ascii=False, default=str)
        f.write("\n")
