"""Black-Scholes-Merton pricing, implied volatility and closed-form Greeks.

``OptionInputs`` holds the contract terms plus a cache of the quantities
every Greek is built from (d1, d2 and the normal CDF/PDF values at them).
The cache is filled from a volatility (``with_implied_vol``) or from a
market price (``with_price``) and is always replaced as a whole.

Nothing here raises on degenerate numbers: zero maturity, zero volatility
or an option that has not been priced yet all come back as ``NaN``/``inf``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

import numpy as np
from scipy.stats import norm

from .core import DAYS_PER_YEAR, SQRT_2PI, ImpliedVolatilityError
from .rational import black, describe_failure, implied_volatility_from_price

logger = logging.getLogger(__name__)

__all__ = ["OptionInputs", "GREEKS", "greeks"]

_N = norm.cdf
_NAN = np.float64(np.nan)


def _npdf(x):
    return np.exp(-0.5 * x * x) / SQRT_2PI


@dataclass(frozen=True)
class _Cache:
    """One consistent set of derived quantities, all from ``implied_vol``."""
    implied_vol: np.float64
    price: np.float64
    d1: np.float64
    d2: np.float64
    nd1: np.float64        # N(sign * d1)
    nd2: np.float64        # N(sign * d2)
    nprimed1: np.float64   # n(d1)
    nprimed2: np.float64   # n(d2)


_UNSET = _Cache(*([_NAN] * 8))

GREEKS = (
    "delta", "gamma", "theta", "vega", "rho", "epsilon", "lambda",
    "vanna", "charm", "veta", "vomma", "speed", "zomma", "color", "ultima",
    "dual_delta", "dual_gamma",
)
_METHODS = {"lambda": "lambda_"}   # report name -> method name


@dataclass
class OptionInputs:
    """A European option under Black-Scholes-Merton.

    Parameters
    ----------
    is_call : bool
        ``True`` for a call, ``False`` for a put.
    s : float
        Spot price.
    k : float
        Strike price.
    r : float
        Continuously-compounded risk-free rate.
    q : float
        Continuous dividend yield.
    t : float
        Time to maturity in years.

    The contract terms are not validated and should not be reassigned once
    the option has been priced.  Call ``with_implied_vol`` or ``with_price``
    before reading ``price``, ``implied_vol`` or any Greek; until then they
    are all ``NaN``.

    Examples
    --------
    >>> opt = OptionInputs(True, 100.0, 110.0, 0.05, 0.05, 20 / 365.25)
    >>> abs(opt.with_implied_vol(0.2).price - 0.0376) < 1e-3
    True
    """
    is_call: bool
    s: float
    k: float
    r: float
    q: float
    t: float
    _cache: _Cache | None = field(default=None, init=False, repr=False, compare=False)

    # -----------------------------------------------------------------------
    # Contract helpers
    # -----------------------------------------------------------------------
    def sign(self) -> float:
        """+1 for a call, -1 for a put."""
        return 1.0 if self.is_call else -1.0

    def dividend_discount(self) -> float:
        _, _, _, q, t = self._terms()
        return float(np.exp(-q * t))

    def rate_discount(self) -> float:
        _, _, r, _, t = self._terms()
        return float(np.exp(-r * t))

    def _terms(self):
        return tuple(np.float64(x) for x in (self.s, self.k, self.r, self.q, self.t))

    @property
    def _c(self) -> _Cache:
        return _UNSET if self._cache is None else self._cache

    # -----------------------------------------------------------------------
    # Derived state
    # -----------------------------------------------------------------------
    @property
    def is_priced(self) -> bool:
        return self._cache is not None

    @property
    def implied_vol(self) -> float:
        return float(self._c.implied_vol)

    @property
    def price(self) -> float:
        return float(self._c.price)

    @property
    def d1(self) -> float:
        return float(self._c.d1)

    @property
    def d2(self) -> float:
        return float(self._c.d2)

    @property
    def nd1(self) -> float:
        return float(self._c.nd1)

    @property
    def nd2(self) -> float:
        return float(self._c.nd2)

    @property
    def nprimed1(self) -> float:
        return float(self._c.nprimed1)

    @property
    def nprimed2(self) -> float:
        return float(self._c.nprimed2)

    # -----------------------------------------------------------------------
    # Volatility -> price
    # -----------------------------------------------------------------------
    def with_implied_vol(self, implied_vol: float) -> OptionInputs:
        """Price the option at ``implied_vol`` and refresh the cache.

        Returns ``self`` so calls can be chained::

            opt.with_implied_vol(0.2).delta()
        """
        self._populate(implied_vol)
        return self

    @np.errstate(divide="ignore", invalid="ignore", over="ignore")
    def _populate(self, implied_vol: float, price: float | None = None) -> None:
        s, k, r, q, t = self._terms()
        vol = np.float64(implied_vol)
        sign = self.sign()

        sig_sqrt_t = vol * np.sqrt(t)
        d1 = (np.log(s / k) + (r - q + 0.5 * vol * vol) * t) / sig_sqrt_t
        d2 = d1 - sig_sqrt_t

        if price is None:
            # black() works on the forward and returns an undiscounted price
            forward = s * np.exp((r - q) * t)
            price = black(forward, k, vol, t, sign) * self.rate_discount()

        self._cache = _Cache(
            implied_vol=vol,
            price=np.float64(price),
            d1=d1,
            d2=d2,
            nd1=_N(sign * d1),
            nd2=_N(sign * d2),
            nprimed1=_npdf(d1),
            nprimed2=_npdf(d2),
        )

    def calculate_option_price(self, implied_vol: float) -> float:
        """Shorthand for ``with_implied_vol(implied_vol).price``."""
        return self.with_implied_vol(implied_vol).price

    # -----------------------------------------------------------------------
    # Price -> volatility
    # -----------------------------------------------------------------------
    @np.errstate(over="ignore", invalid="ignore")
    def with_price(self, price: float, *, strict: bool = False) -> OptionInputs:
        """Back out the implied volatility of a discounted market ``price``.

        On success the cache is rebuilt from the recovered volatility while
        ``price`` itself is stored exactly as given.  When no volatility
        reproduces the price (outside the no-arbitrage bounds, or the solver
        gives up) the option is left exactly as it was, so an unpriced option
        keeps returning ``NaN``.  Pass ``strict=True`` to get an
        ``ImpliedVolatilityError`` instead.
        """
        s, k, r, _, t = self._terms()
        rate_inv_discount = np.exp(r * t)
        undiscounted = price * rate_inv_discount
        forward = s * rate_inv_discount * self.dividend_discount()

        vol = implied_volatility_from_price(
            float(undiscounted), float(forward), float(k), float(t), self.sign(),
        )
        if vol > 0.0:
            self._populate(vol, price=price)
            return self

        reason = describe_failure(vol)
        if strict:
            raise ImpliedVolatilityError(
                f"no implied volatility for price {price!r}: {reason}", vol
            )
        logger.debug("price %r leaves %r unchanged: %s", price, self, reason)
        return self

    def calculate_implied_vol(self, price: float) -> float:
        """Shorthand for ``with_price(price).implied_vol``."""
        return self.with_price(price).implied_vol

    # -----------------------------------------------------------------------
    # First order
    # -----------------------------------------------------------------------
    def delta(self) -> float:
        return float(self.sign() * self._c.nd1 * self.dividend_discount())

    @np.errstate(divide="ignore", invalid="ignore")
    def theta(self) -> float:
        """Time decay per calendar day, ``-dV/dT / DAYS_PER_YEAR``."""
        s, k, r, q, t = self._terms()
        c, sign = self._c, self.sign()
        dq = self.dividend_discount()
        annual = (-(s * c.implied_vol * dq * c.nprimed1 / (2.0 * np.sqrt(t)))
                  - sign * r * k * self.rate_discount() * c.nd2
                  + sign * q * s * dq * c.nd1)
        return float(annual / DAYS_PER_YEAR)

    def vega(self) -> float:
        """Price change for a one point (0.01) move in volatility."""
        s, _, _, _, t = self._terms()
        return float(0.01 * s * self.dividend_discount() * np.sqrt(t) * self._c.nprimed1)

    def rho(self) -> float:
        """Price change for a one point (0.01) move in the rate."""
        _, k, _, _, t = self._terms()
        return float(self.sign() * 0.01 * k * t * self.rate_discount() * self._c.nd2)

    def epsilon(self) -> float:
        """dV/dq, unscaled."""
        s, _, _, _, t = self._terms()
        return float(-self.sign() * s * t * self.dividend_discount() * self._c.nd1)

    @np.errstate(divide="ignore", invalid="ignore")
    def lambda_(self) -> float:
        """Elasticity ``delta * S / V``; ``NaN`` for a zero or missing price."""
        s = np.float64(self.s)
        price = self._c.price
        if price == 0.0:
            return float("nan")
        return float(self.delta() * s / price)

    def dual_delta(self) -> float:
        """dV/dK."""
        return float(-self.sign() * self.rate_discount() * self._c.nd2)

    # -----------------------------------------------------------------------
    # Second order
    # -----------------------------------------------------------------------
    @np.errstate(divide="ignore", invalid="ignore")
    def gamma(self) -> float:
        s, _, _, _, t = self._terms()
        c = self._c
        return float(self.dividend_discount() * c.nprimed1 / (s * c.implied_vol * np.sqrt(t)))

    @np.errstate(divide="ignore", invalid="ignore")
    def vanna(self) -> float:
        """d(delta)/d(vol) per vol point, equal to d(vega)/dS."""
        c = self._c
        return float(c.d2 * self.dividend_discount() * c.nprimed1 * -0.01 / c.implied_vol)

    @np.errstate(divide="ignore", invalid="ignore")
    def charm(self) -> float:
        """Delta decay, ``-d(delta)/dT`` per year."""
        _, _, r, q, t = self._terms()
        c = self._c
        dq = self.dividend_discount()
        sig_sqrt_t = c.implied_vol * np.sqrt(t)
        return float(self.sign() * q * dq * c.nd1
                     - dq * c.nprimed1 * (2.0 * (r - q) * t - c.d2 * sig_sqrt_t)
                     / (2.0 * t * sig_sqrt_t))

    @np.errstate(divide="ignore", invalid="ignore")
    def veta(self) -> float:
        s, _, r, q, t = self._terms()
        c = self._c
        sqrt_t = np.sqrt(t)
        return float(-s * self.dividend_discount() * c.nprimed1 * sqrt_t
                     * (q + ((r - q) * c.d1) / (c.implied_vol * sqrt_t)
                        - ((1.0 + c.d1 * c.d2) / (2.0 * t))))

    @np.errstate(divide="ignore", invalid="ignore")
    def vomma(self) -> float:
        """d(vega)/d(vol); inherits vega's per-point scaling."""
        c = self._c
        return float(np.float64(self.vega()) * c.d1 * c.d2 / c.implied_vol)

    @np.errstate(divide="ignore", invalid="ignore")
    def dual_gamma(self) -> float:
        _, k, _, _, t = self._terms()
        c = self._c
        return float(self.rate_discount() * (c.nprimed2 / (k * c.implied_vol * np.sqrt(t))))

    # -----------------------------------------------------------------------
    # Third order
    # -----------------------------------------------------------------------
    @np.errstate(divide="ignore", invalid="ignore")
    def speed(self) -> float:
        s, _, _, _, t = self._terms()
        c = self._c
        return float(-np.float64(self.gamma()) / s
                     * (c.d1 / (c.implied_vol * np.sqrt(t)) + 1.0))

    @np.errstate(divide="ignore", invalid="ignore")
    def zomma(self) -> float:
        c = self._c
        return float(np.float64(self.gamma()) * ((c.d1 * c.d2 - 1.0) / c.implied_vol))

    @np.errstate(divide="ignore", invalid="ignore")
    def color(self) -> float:
        """d(gamma)/dT per year."""
        s, _, r, q, t = self._terms()
        c = self._c
        sig_sqrt_t = c.implied_vol * np.sqrt(t)
        return float(-self.dividend_discount()
                     * (c.nprimed1 / (2.0 * s * t * sig_sqrt_t))
                     * (2.0 * q * t + 1.0
                        + (2.0 * (r - q) * t - c.d2 * sig_sqrt_t) / sig_sqrt_t * c.d1))

    @np.errstate(divide="ignore", invalid="ignore")
    def ultima(self) -> float:
        c = self._c
        d1d2 = c.d1 * c.d2
        return float(-np.float64(self.vega()) / (c.implied_vol * c.implied_vol)
                     * (d1d2 * (1.0 - d1d2) + c.d1 * c.d1 + c.d2 * c.d2))


def greeks(opt: OptionInputs, names: Iterable[str] | None = None) -> dict[str, float]:
    """Collect Greeks into a dict keyed by name (default: all of ``GREEKS``).

    ``"lambda"`` maps to ``OptionInputs.lambda_``.
    """
    out: dict[str, float] = {}
    for name in (GREEKS if names is None else names):
        if name not in GREEKS:
            raise ValueError(f"unknown greek {name!r}; expected one of {GREEKS}")
        out[name] = getattr(opt, _METHODS.get(name, name))()
    return out
