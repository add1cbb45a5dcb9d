"""Utility modules."""

from services.api.src.morpho_market.utils.json_backup import save_to_json, write_backups
from services.api.src.morpho_market.utils.units import format_fixed, format_units, to_decimal

__all__ = [
    "format_fixed",
    "format_units",
    "save_to_json",
    "to_decimal",
    "write_backups",
]
