# bsmpricer — Black-Scholes-Merton pricing, implied volatility and Greeks
# Public API

from .core import CALL, PUT, DAYS_PER_YEAR, ImpliedVolatilityError, parse_kind
from .black_scholes import OptionInputs, GREEKS, greeks

# Forward-space pricer and implied-vol solver
from .rational import black, implied_volatility_from_price

# Batch pricing
from .book import price_book, price_row

__all__ = [
    "CALL", "PUT", "DAYS_PER_YEAR", "ImpliedVolatilityError", "parse_kind",
    "OptionInputs", "GREEKS", "greeks",
    "black", "implied_volatility_from_price",
    "price_book", "price_row",
]

__version__ = "0.1.0"
