from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from .logger import get_logger


logger = get_logger(__name__)


def to_json_snapshot(value: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Serialize an audit before/after snapshot.

    Dates, decimals and enums fall back to `str()`. If the mapping still cannot
    be encoded the plain string form is stored instead of failing.
    """

    if value is None:
        return None
    try:
        return json.dumps(dict(value), default=str, sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        logger.error("Failed to convert audit snapshot to JSON: %s", exc)
        return str(value)
