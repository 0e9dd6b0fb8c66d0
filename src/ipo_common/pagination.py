"""Keyset cursor utilities shared by list endpoints.

Cursor format: Base64 JSON ``{"ts": "<ISO timestamp>", "id": <bigint>}`` taken
from the last row of the page. The timestamp column depends on the listing
(``created_at`` for subscriptions and admin lists).
"""

import base64
import json
from datetime import datetime


def cursor_encode(ts: datetime, row_id: int) -> str:
    payload = {"ts": ts.isoformat(), "id": row_id}
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[datetime | None, int | None]:
    """Decode a cursor -> (ts, id), or (None, None) when absent or malformed."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return datetime.fromisoformat(data["ts"]), int(data["id"])
    except Exception:
        return None, None
