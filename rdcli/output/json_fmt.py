"""JSON output: a full dump of the data, ignoring column configuration."""
import json
from typing import Any


def format_json(data: Any) -> str:
    """Pretty-print data with a 2-space indent. Never contains styling."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)
