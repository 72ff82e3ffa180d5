"""Utility modules for the edupath API."""

from edupath.utils.rounding import ratio_percent, round_half_up, to_decimal


__all__ = ["ratio_percent", "round_half_up", "to_decimal"]
