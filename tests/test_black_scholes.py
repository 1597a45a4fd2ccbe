"""Tests for OptionInputs: pricing, implied vol and cache lifecycle."""

import math

import numpy as np
import pytest

from bsmpricer import OptionInputs, GREEKS, ImpliedVolatilityError, greeks
from bsmpricer.rational import ABOVE_MAXIMUM, BELOW_INTRINSIC

T20 = 20.0 / 365.25


def _opt(is_call, s=100.0, k=110.0, r=0.05, q=0.05, t=T20):
    return OptionInputs(is_call, s, k, r, q, t)


# ---------------------------------------------------------------------------
# Reference prices
# ---------------------------------------------------------------------------
class TestKnownValues:
    def test_call_otm(self):
        assert abs(_opt(True, k=110.0).calculate_option_price(0.2) - 0.0376) < 1e-3

    def test_call_itm(self):
        assert abs(_opt(True, k=90.0).calculate_option_price(0.2) - 9.9913) < 1e-3

    def test_put_otm(self):
        assert abs(_opt(False, k=90.0).calculate_option_price(0.2) - 0.01867) < 1e-3

    def test_put_itm(self):
        assert abs(_opt(False, k=110.0).calculate_option_price(0.2) - 10.0103) < 1e-3

    def test_textbook_atm(self):
        opt = OptionInputs(True, 100.0, 100.0, 0.05, 0.0, 1.0).with_implied_vol(0.2)
        assert abs(opt.price - 10.4506) < 1e-3
        put = OptionInputs(False, 100.0, 100.0, 0.05, 0.0, 1.0).with_implied_vol(0.2)
        assert abs(put.price - 5.5735) < 1e-3


# ---------------------------------------------------------------------------
# Put-call parity and monotonicity
# ---------------------------------------------------------------------------
class TestParity:
    @pytest.mark.parametrize("k", [80.0, 100.0, 125.0])
    def test_price_parity(self, k):
        call = OptionInputs(True, 100.0, k, 0.04, 0.015, 0.8).with_implied_vol(0.3)
        put = OptionInputs(False, 100.0, k, 0.04, 0.015, 0.8).with_implied_vol(0.3)
        expected = 100.0 * call.dividend_discount() - k * call.rate_discount()
        assert abs((call.price - put.price) - expected) < 1e-10

    @pytest.mark.parametrize("k", [80.0, 100.0, 125.0])
    def test_delta_parity(self, k):
        call = OptionInputs(True, 100.0, k, 0.04, 0.015, 0.8).with_implied_vol(0.3)
        put = OptionInputs(False, 100.0, k, 0.04, 0.015, 0.8).with_implied_vol(0.3)
        assert abs((call.delta() - put.delta()) - call.dividend_discount()) < 1e-12

    def test_shared_greeks_equal(self):
        call = _opt(True).with_implied_vol(0.25)
        put = _opt(False).with_implied_vol(0.25)
        for name in ("gamma", "vega", "vomma", "speed", "zomma", "color", "ultima"):
            assert getattr(call, name)() == pytest.approx(getattr(put, name)(), rel=1e-12)

    def test_call_price_increasing_in_vol(self):
        vols = np.linspace(0.05, 1.5, 30)
        prices = [_opt(True, k=100.0).calculate_option_price(v) for v in vols]
        assert np.all(np.diff(prices) > 0)

    def test_sign_and_discounts(self):
        opt = OptionInputs(False, 100.0, 100.0, 0.05, 0.02, 2.0)
        assert opt.sign() == -1.0
        assert _opt(True).sign() == 1.0
        assert opt.rate_discount() == pytest.approx(math.exp(-0.1))
        assert opt.dividend_discount() == pytest.approx(math.exp(-0.04))


# ---------------------------------------------------------------------------
# Price -> implied vol
# ---------------------------------------------------------------------------
class TestImpliedVol:
    @pytest.mark.parametrize("is_call,s,k,r,q,t,vol", [
        (True, 100.0, 110.0, 0.05, 0.05, T20, 0.2),
        (True, 100.0, 90.0, 0.05, 0.05, T20, 0.2),
        (False, 100.0, 90.0, 0.05, 0.05, T20, 0.2),
        (False, 100.0, 110.0, 0.05, 0.05, T20, 0.2),
        (True, 50.0, 55.0, 0.0, 0.0, 25.0 / 360.0, 0.5),
        (False, 100.0, 100.0, 0.03, 0.0, 1.0, 0.45),
        (True, 100.0, 130.0, 0.01, 0.03, 2.0, 1.5),
    ])
    def test_round_trip(self, is_call, s, k, r, q, t, vol):
        px = OptionInputs(is_call, s, k, r, q, t).calculate_option_price(vol)
        opt = OptionInputs(is_call, s, k, r, q, t).with_price(px)
        assert abs(opt.implied_vol - vol) < 1e-6

    def test_quoted_price_kept_verbatim(self):
        opt = _opt(False).with_price(10.0103)
        assert opt.price == 10.0103
        assert abs(opt.implied_vol - 0.2) < 1e-3

    def test_calculate_implied_vol(self):
        px = _opt(True).calculate_option_price(0.2)
        assert abs(_opt(True).calculate_implied_vol(px) - 0.2) < 1e-6

    def test_greeks_match_forward_path(self):
        fwd = _opt(True, k=100.0).with_implied_vol(0.3)
        rev = _opt(True, k=100.0).with_price(fwd.price)
        for name, val in greeks(fwd).items():
            assert greeks(rev)[name] == pytest.approx(val, rel=1e-6, abs=1e-10)


# ---------------------------------------------------------------------------
# Cache lifecycle
# ---------------------------------------------------------------------------
class TestCache:
    def test_unpriced_is_nan(self):
        opt = _opt(True)
        assert not opt.is_priced
        assert math.isnan(opt.price)
        assert math.isnan(opt.implied_vol)
        for attr in ("d1", "d2", "nd1", "nd2", "nprimed1", "nprimed2"):
            assert math.isnan(getattr(opt, attr))
        assert all(math.isnan(v) for v in greeks(opt).values())

    def test_new_vol_replaces_price(self):
        opt = _opt(True, k=100.0).with_implied_vol(0.2)
        p1 = opt.price
        opt.with_implied_vol(0.3)
        assert opt.implied_vol == 0.3
        assert opt.price > p1
        assert opt.price == _opt(True, k=100.0).calculate_option_price(0.3)

    def test_new_price_replaces_vol(self):
        opt = _opt(True, k=100.0).with_implied_vol(0.2)
        opt.with_price(_opt(True, k=100.0).calculate_option_price(0.35))
        assert abs(opt.implied_vol - 0.35) < 1e-6

    def test_with_methods_chain(self):
        opt = _opt(True)
        assert opt.with_implied_vol(0.2) is opt
        assert opt.with_price(0.01) is opt

    def test_repr_hides_cache(self):
        assert "_cache" not in repr(_opt(True).with_implied_vol(0.2))


# ---------------------------------------------------------------------------
# Solver failure leaves state alone
# ---------------------------------------------------------------------------
class TestSolverFailure:
    def test_price_above_spot_is_noop(self):
        opt = _opt(True).with_price(150.0)
        assert not opt.is_priced
        assert math.isnan(opt.implied_vol)
        assert math.isnan(opt.price)

    def test_failure_keeps_previous_state(self):
        opt = _opt(True).with_implied_vol(0.2)
        before = (opt.implied_vol, opt.price, opt.d1, opt.delta())
        opt.with_price(-1.0)
        assert (opt.implied_vol, opt.price, opt.d1, opt.delta()) == before

    def test_below_intrinsic_is_noop(self):
        # intrinsic of the 90 call is about 10
        opt = _opt(True, k=90.0).with_price(5.0)
        assert not opt.is_priced

    def test_strict_raises(self):
        with pytest.raises(ImpliedVolatilityError) as exc:
            _opt(True).with_price(150.0, strict=True)
        assert exc.value.sentinel == ABOVE_MAXIMUM
        assert "maximum" in str(exc.value)

    def test_strict_below_intrinsic(self):
        with pytest.raises(ImpliedVolatilityError) as exc:
            _opt(False, k=110.0).with_price(1.0, strict=True)
        assert exc.value.sentinel == BELOW_INTRINSIC

    def test_strict_is_value_error(self):
        with pytest.raises(ValueError):
            _opt(True).with_price(float("nan"), strict=True)


# ---------------------------------------------------------------------------
# Degenerate inputs give non-finite numbers, not exceptions
# ---------------------------------------------------------------------------
class TestDegenerate:
    def test_zero_maturity(self):
        opt = _opt(True, t=0.0).with_implied_vol(0.2)
        assert not math.isfinite(opt.d1)
        assert not math.isfinite(opt.gamma())
        assert not math.isfinite(opt.theta())
        assert not math.isfinite(opt.dual_gamma())

    def test_zero_vol(self):
        opt = _opt(True).with_implied_vol(0.0)
        assert not math.isfinite(opt.d1)
        assert not math.isfinite(opt.gamma())
        assert not math.isfinite(opt.vanna())

    def test_zero_maturity_reverse_is_noop(self):
        assert not _opt(True, t=0.0).with_price(1.0).is_priced

    def test_lambda_nan_for_zero_price(self):
        opt = OptionInputs(True, 100.0, 200.0, 0.0, 0.0, 0.01).with_implied_vol(0.01)
        assert opt.price == 0.0
        assert math.isnan(opt.lambda_())

    def test_lambda_is_elasticity(self):
        opt = _opt(True, k=100.0).with_implied_vol(0.2)
        assert opt.lambda_() == pytest.approx(opt.delta() * 100.0 / opt.price)
        assert opt.lambda_() > 1.0


# ---------------------------------------------------------------------------
# greeks() report
# ---------------------------------------------------------------------------
class TestGreeksReport:
    def test_all_keys(self):
        g = greeks(_opt(True).with_implied_vol(0.2))
        assert tuple(g) == GREEKS
        assert len(g) == 17

    def test_subset_and_lambda(self):
        opt = _opt(False).with_implied_vol(0.2)
        g = greeks(opt, ["delta", "lambda"])
        assert set(g) == {"delta", "lambda"}
        assert g["lambda"] == opt.lambda_()

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            greeks(_opt(True), ["delta", "phi"])
