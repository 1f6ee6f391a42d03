"""Utilities for turning a Record Map into a storage blob and back."""

from __future__ import annotations
import json
import logging
from typing import Any, Optional

from ..models import RecordMap

logger = logging.getLogger(__name__)


def dump_records(records: RecordMap) -> str:
    """Serialize a Record Map to a JSON object string."""
    return json.dumps(records, ensure_ascii=False)


def load_records(blob: Optional[str]) -> RecordMap:
    """
    Parse a storage blob into a Record Map.
    - Absent or empty blobs give an empty map.
    - Malformed JSON or anything other than an object gives an empty map;
      the parse failure is logged, never raised.
    - Keys of a well-formed object are coerced to str; non-string values are
      kept as their JSON text (null -> "null", true -> "true").
    """
    if not blob:
        return {}

    try:
        data: Any = json.loads(blob)
    except (TypeError, ValueError) as e:
        logger.warning("Discarding malformed storage blob: %s", e)
        return {}

    if not isinstance(data, dict):
        logger.warning(
            "Discarding storage blob holding %s instead of an object",
            type(data).__name__,
        )
        return {}

    return {
        str(k): v if isinstance(v, str) else json.dumps(v, ensure_ascii=False)
        for k, v in data.items()
    }
