from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable

from .models import ChangeEvent
from .schemas import ChangeEventOut


# PUBLIC_INTERFACE
def pagination_envelope(items: Iterable[Any], total: int, limit: int, offset: int) -> Dict[str, Any]:
    """
    Build the envelope returned by paginated list endpoints: items, total, limit, offset.
    """
    return {
        "items": list(items),
        "total": int(total),
        "limit": max(int(limit), 0),
        "offset": max(int(offset), 0),
    }


def to_change_event_out(event: ChangeEvent) -> ChangeEventOut:
    return ChangeEventOut(**asdict(event))
