# rational.py
# Undiscounted Black pricing on the forward, and its inverse: implied
# volatility from an undiscounted price.  Both work purely in forward space
# with an option sign (+1 call, -1 put), so rates and dividends never appear.

from __future__ import annotations

import logging
import math

import numpy as np
from scipy.optimize import brentq
from scipy.stats import norm

logger = logging.getLogger(__name__)

_N = norm.cdf   # standard-normal CDF

# Non-positive values returned by the solver when no volatility exists.
# A price exactly at intrinsic value maps to 0.0.
BELOW_INTRINSIC = -1.0
ABOVE_MAXIMUM   = -2.0
NOT_CONVERGED   = -3.0
INVALID_INPUT   = -4.0

_FAILURES = {
    0.0: "price equals intrinsic value (zero volatility)",
    BELOW_INTRINSIC: "price is below intrinsic value",
    ABOVE_MAXIMUM: "price is at or above the no-arbitrage maximum",
    NOT_CONVERGED: "root finder did not converge",
    INVALID_INPUT: "price is not finite or forward/strike/maturity is not positive",
}

_VOL_FLOOR   = 1e-10
_VOL_CEILING = 1e3


def describe_failure(value: float) -> str:
    """Human-readable reason for a non-positive solver result."""
    return _FAILURES.get(value, f"no implied volatility (solver returned {value!r})")


# ---------------------------------------------------------------------------
# Forward pricer
# ---------------------------------------------------------------------------
def black(forward: float, strike: float, volatility: float, maturity: float,
          sign: float) -> float:
    """Undiscounted Black price ``sign * (F N(sign d1) - K N(sign d2))``.

    Zero volatility or maturity degenerates to intrinsic value, or ``NaN``
    at the money, instead of raising.
    """
    F, K, sigma, T = (np.float64(x) for x in (forward, strike, volatility, maturity))
    with np.errstate(divide="ignore", invalid="ignore"):
        sig_sqrt_T = sigma * np.sqrt(T)
        d1 = np.log(F / K) / sig_sqrt_T + 0.5 * sig_sqrt_T
        d2 = d1 - sig_sqrt_T
        return float(sign * (F * _N(sign * d1) - K * _N(sign * d2)))


# ---------------------------------------------------------------------------
# Implied volatility
# ---------------------------------------------------------------------------
def _bracket(objective) -> tuple[float, float] | None:
    """Find ``lo < hi`` with ``objective(lo) <= 0 < objective(hi)``."""
    hi = 1.0
    while objective(hi) <= 0.0:
        hi *= 2.0
        if hi > _VOL_CEILING:
            return None
    lo = 0.5 * hi
    while objective(lo) > 0.0:
        lo *= 0.5
        if lo < _VOL_FLOOR:
            return None
    return lo, hi


def implied_volatility_from_price(
    price: float, forward: float, strike: float, maturity: float, sign: float,
    *, tol: float = 1e-14, maxiter: int = 200,
) -> float:
    """Recover Black volatility from an undiscounted option price.

    The search runs on the out-of-the-money time value: the intrinsic part
    is removed and the remainder is priced with whichever option class is
    out of the money (put-call parity), which keeps in-the-money quotes well
    conditioned.  The root is polished with Brent's method on an expanding
    bracket.

    Parameters
    ----------
    price : float
        Undiscounted option price.
    forward, strike, maturity : float
        Must be positive.
    sign : float
        ``+1.0`` for a call, ``-1.0`` for a put.
    tol : float
        Absolute volatility tolerance passed to ``brentq``.

    Returns
    -------
    float
        The volatility on success.  A non-positive value otherwise, one of
        ``0.0`` (price at intrinsic), ``BELOW_INTRINSIC``, ``ABOVE_MAXIMUM``,
        ``NOT_CONVERGED`` or ``INVALID_INPUT``.
    """
    if not (math.isfinite(price) and math.isfinite(forward) and math.isfinite(maturity)
            and forward > 0.0 and strike > 0.0 and maturity > 0.0):
        logger.debug("invalid solver input price=%r F=%r K=%r T=%r",
                     price, forward, strike, maturity)
        return INVALID_INPUT

    upper = forward if sign > 0 else strike
    if price >= upper:
        logger.debug("price %r >= maximum %r", price, upper)
        return ABOVE_MAXIMUM

    intrinsic = max(sign * (forward - strike), 0.0)
    time_value = price - intrinsic
    if time_value < 0.0:
        logger.debug("price %r below intrinsic %r", price, intrinsic)
        return BELOW_INTRINSIC
    if time_value == 0.0:
        return 0.0

    otm_sign = -1.0 if forward > strike else 1.0

    def objective(sigma: float) -> float:
        return black(forward, strike, sigma, maturity, otm_sign) - time_value

    bracket = _bracket(objective)
    if bracket is None:
        logger.debug("could not bracket time value %r (F=%r K=%r T=%r)",
                     time_value, forward, strike, maturity)
        return NOT_CONVERGED

    sigma, result = brentq(objective, *bracket, xtol=tol, maxiter=maxiter,
                           full_output=True, disp=False)
    if not result.converged:
        logger.debug("brentq stopped after %d iterations: %s",
                     result.iterations, result.flag)
        return NOT_CONVERGED
    return float(sigma)
