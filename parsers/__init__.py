"""
File parsers module.
"""

from parsers.order_csv_parser import (
    parse_order_csv,
    OrderCSVParseResult,
    OrderCSVParseError,
)

__all__ = [
    "parse_order_csv",
    "OrderCSVParseResult",
    "OrderCSVParseError",
]
