import argparse
import json
import logging
import sys

from .black_scholes import OptionInputs, greeks
from .book import price_book, read_rows, write_results
from .core import CALL, ImpliedVolatilityError, parse_kind

logger = logging.getLogger(__name__)


def _kind(s: str) -> bool:
    try:
        return parse_kind(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def add_common(parser: argparse.ArgumentParser):
    parser.add_argument("--S0", type=float, required=True)
    parser.add_argument("--K", type=float, required=True)
    parser.add_argument("--T", type=float, required=True, help="years")
    parser.add_argument("--r", type=float, required=True, help="cont. risk-free")
    parser.add_argument("--q", type=float, default=0.0, help="cont. dividend yield")
    parser.add_argument("--kind", type=_kind, default=CALL, help="call|put")
    parser.add_argument("--greeks", action="store_true", help="also report greeks")
    parser.add_argument("--json", action="store_true", help="print JSON")


def _inputs(args) -> OptionInputs:
    return OptionInputs(args.kind, args.S0, args.K, args.r, args.q, args.T)


def _report(opt: OptionInputs, args):
    out = {"price": opt.price, "implied_vol": opt.implied_vol}
    if args.greeks:
        out.update(greeks(opt))
    if args.json:
        print(json.dumps(out, indent=2))
    else:
        for key, val in out.items():
            print(f"{key:<12}{val:.10f}")


def cmd_price(args):
    opt = _inputs(args).with_implied_vol(args.sigma)
    _report(opt, args)
    return 0


def cmd_iv(args):
    opt = _inputs(args)
    try:
        opt.with_price(args.price, strict=True)
    except ImpliedVolatilityError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    _report(opt, args)
    return 0


def cmd_book(args):
    rows = read_rows(args.input)
    logger.info("pricing %d quotes from %s", len(rows), args.input)
    results = price_book(rows, compute_greeks=args.greeks)
    write_results(results, args.output)

    failed = sum(1 for r in results if r.get("error"))
    print(f"Priced: {len(results) - failed}  |  Failed: {failed}  ->  {args.output}")
    return 0


def main(argv=None):
    p = argparse.ArgumentParser(prog="bsmpricer",
                                description="Black-Scholes-Merton pricing and Greeks")
    p.add_argument("-v", "--verbose", action="count", default=0,
                   help="-v for INFO, -vv for DEBUG logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    # Volatility -> price
    p_price = sub.add_parser("price", help="price from a volatility")
    add_common(p_price)
    p_price.add_argument("--sigma", type=float, required=True)
    p_price.set_defaults(func=cmd_price)

    # Price -> implied vol
    p_iv = sub.add_parser("iv", help="implied volatility from a market price")
    add_common(p_iv)
    p_iv.add_argument("--price", type=float, required=True, help="discounted market price")
    p_iv.set_defaults(func=cmd_iv)

    # Book
    p_book = sub.add_parser("book", help="batch-price a CSV/JSON book of quotes")
    p_book.add_argument("--input", required=True, help="quotes (.csv or .json)")
    p_book.add_argument("--output", required=True, help="results (.csv or .json)")
    p_book.add_argument("--greeks", action="store_true", help="compute greeks")
    p_book.set_defaults(func=cmd_book)

    args = p.parse_args(argv)
    level = (logging.WARNING, logging.INFO)[args.verbose] if args.verbose < 2 else logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
