from .currency import format_currency
from .datetime import format_version, parse_timestamp, utcnow

__all__ = ["format_currency", "format_version", "parse_timestamp", "utcnow"]
