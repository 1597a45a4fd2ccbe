from __future__ import annotations

import math

# ---------------------------------------------------------------------------
# Conventions
# ---------------------------------------------------------------------------
DAYS_PER_YEAR = 365.25      # theta is reported per calendar day
SQRT_2PI = math.sqrt(2.0 * math.pi)

CALL = "call"
PUT  = "put"


def parse_kind(kind: str | bool) -> bool:
    """Map ``"call"``/``"c"``/``"put"``/``"p"`` (any case) or a bool to ``is_call``."""
    if isinstance(kind, bool):
        return kind
    s = str(kind).strip().lower()
    if s in {CALL, "c"}:
        return True
    if s in {PUT, "p"}:
        return False
    raise ValueError(f"kind must be 'call' or 'put', got {kind!r}")


class ImpliedVolatilityError(ValueError):
    """No implied volatility exists for the quoted price.

    Only raised when the caller opts in with ``strict=True``; the default
    reverse path leaves the option untouched instead.
    """

    def __init__(self, message: str, sentinel: float):
        super().__init__(message)
        self.sentinel = sentinel
