"""
Utils package
"""

from .normalization import normalize_account_type, normalize_token
from .dates import parse_date, previous_working_day, round_money

__all__ = [
    "normalize_account_type",
    "normalize_token",
    "parse_date",
    "previous_working_day",
    "round_money",
]
