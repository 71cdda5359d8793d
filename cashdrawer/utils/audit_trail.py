"""Bitácora JSONL de transiciones de turno (apertura, movimiento, cierre)."""
from __future__ import annotations

import json
import os
import threading
from typing import Any, Dict, Optional

__all__ = ["AuditTrail"]


class AuditTrail:
    """Append-only: una línea por evento, flush+fsync en cada escritura."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def record(self, kind: str, shift_id: Optional[str], actor: Optional[str], **data: Any) -> Dict[str, Any]:
        event = {"kind": kind, "shift_id": shift_id, "actor": actor, **data}
        line = json.dumps(event, ensure_ascii=False, default=str)
        with self._lock:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "a", encoding="utf-8", newline="\n") as f:
                f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())
        return event
