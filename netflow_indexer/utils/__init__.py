"""Decimal-string arithmetic helpers for token amounts."""

from netflow_indexer.utils.amounts import (
    add_decimal,
    format_units,
    parse_amount,
    sub_decimal,
)

__all__ = ["add_decimal", "format_units", "parse_amount", "sub_decimal"]
