"""Cooperative cancellation checks run before any database I/O."""

from __future__ import annotations

import threading
from typing import Optional

from server_registry.errors import OperationCancelledError


def ensure_not_cancelled(cancel: Optional[threading.Event], action: str = "operation") -> None:
    """Raise ``OperationCancelledError`` when the caller has set ``cancel``."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError(f"{action} cancelled by caller")
