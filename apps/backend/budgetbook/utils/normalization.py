"""
Normalization helpers

Account type strings are free-form; reports group them into a small set of buckets.
"""

import re
import unicodedata

OTHER_BUCKET = "other"

KNOWN_ACCOUNT_BUCKETS = frozenset({"checking", "payroll", "savings", "cash", "investments"})

_BUCKET_ALIASES = {
    "investment": "investments",
}


def normalize_token(value: str | None) -> str:
    """
    Lower-case, NFKC-normalized token with surrounding whitespace removed.

    Example:
        >>> normalize_token("  Savings ")
        "savings"
    """
    if not value:
        return ""
    normalized = unicodedata.normalize("NFKC", value)
    normalized = normalized.strip().casefold()
    return re.sub(r"\s+", " ", normalized)


def normalize_account_type(value: str | None) -> str:
    """
    Map a free-form account type onto its report bucket.

    - "investment" and "investments" both become "investments"
    - anything outside the known set (including empty) becomes "other"

    Example:
        >>> normalize_account_type("Investment")
        "investments"
        >>> normalize_account_type("crypto wallet")
        "other"
    """
    token = normalize_token(value)
    token = _BUCKET_ALIASES.get(token, token)
    if token in KNOWN_ACCOUNT_BUCKETS:
        return token
    return OTHER_BUCKET
