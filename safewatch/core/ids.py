"""Record identifiers."""

from __future__ import annotations

import itertools
import secrets
import threading
import time

_counter = itertools.count()
_counter_lock = threading.Lock()


def new_id() -> str:
    """Opaque, time-ordered token: sorting IDs as strings follows creation order."""
    with _counter_lock:
        seq = next(_counter) & 0xFFFF
    return f"{time.time_ns():016x}{seq:04x}{secrets.token_hex(4)}"
