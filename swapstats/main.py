"""
SwapStats CLI

Command-line tool to query token flow, wallet performance, OHLCV candles
and raw swaps from the data warehouse.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from tabulate import tabulate

from swapstats.analytics import SwapAnalytics
from swapstats.errors import SwapStatsError
from swapstats.options import TokenStatsOptions, TransactionFilter, WalletStatsOptions
from swapstats.period import validate_period


def parse_period(value: str) -> str:
    """argparse type for lookback periods like 5m / 1h / 7d"""
    try:
        validate_period(value)
    except SwapStatsError as e:
        raise argparse.ArgumentTypeError(str(e))
    return value


def format_usd(amount: float) -> str:
    """Format USD amount with commas and 2 decimal places"""
    return f"${amount:,.2f}"


def format_ts(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp).strftime('%Y-%m-%d %H:%M:%S')


def format_duration(seconds: float) -> str:
    if seconds >= 3600:
        return f"{seconds / 3600:.1f}h"
    if seconds >= 60:
        return f"{seconds / 60:.1f}m"
    return f"{seconds:.0f}s"


def print_json(items):
    print(json.dumps([item.model_dump() for item in items], indent=2))


def show_tokens(analytics: SwapAnalytics, args):
    opts = TokenStatsOptions(
        period=args.period,
        dexes=args.dexes,
        token_addresses=args.tokens,
        sort_by=args.sort_by,
        sort_order=args.sort_order,
        limit=args.limit,
        min_market_cap=args.min_market_cap,
        max_market_cap=args.max_market_cap
    )
    stats = analytics.fetch_token_stats(opts)
    if args.format == 'json':
        print_json(stats)
        return
    if not stats:
        print("No token activity found for the specified period")
        return
    table_data = [
        [
            s.address,
            format_usd(s.net_flow),
            format_usd(s.volume),
            f"{s.tx_count:,}",
            f"{s.unique_makers:,}",
            f"{s.price:.10g}",
            format_usd(s.market_cap),
            f"{s.price_change:.2f}%"
        ]
        for s in stats
    ]
    headers = ['Token', 'Net Flow', 'Volume', 'Tx Count', 'Makers', 'Price', 'Market Cap', 'Change']
    print(f"\nTOKEN FLOW (last {args.period}, sorted by {args.sort_by} {args.sort_order})")
    print("-" * 80)
    print(tabulate(table_data, headers=headers, tablefmt='grid'))


def show_wallets(analytics: SwapAnalytics, args):
    opts = WalletStatsOptions(
        period=args.period,
        dexes=args.dexes,
        wallet_addresses=args.wallets,
        token_addresses=args.tokens,
        include_swaps=False,
        include_top_tokens=args.format == 'json',
        sort_by=args.sort_by,
        sort_order=args.sort_order
    )
    stats = analytics.fetch_wallet_stats(opts)
    if args.format == 'json':
        print_json(stats)
        return
    if not stats:
        print("No wallet activity found for the specified period")
        return
    table_data = [
        [
            w.address,
            format_usd(w.volume),
            f"{w.tx_count:,}",
            w.tokens_traded,
            format_duration(w.avg_hold_time),
            format_usd(w.avg_trade_size),
            format_usd(w.pnl)
        ]
        for w in stats[:args.limit]
    ]
    headers = ['Wallet', 'Volume', 'Tx Count', 'Tokens', 'Avg Hold', 'Avg Trade', 'PnL*']
    print(f"\nWALLET PERFORMANCE (last {args.period}, sorted by {args.sort_by} {args.sort_order})")
    print("-" * 80)
    print(tabulate(table_data, headers=headers, tablefmt='grid'))
    print("* PnL sums the USD value of acquisitions only")


def show_ohlcv(analytics: SwapAnalytics, args):
    candles = analytics.fetch_token_ohlcv(args.token, args.time_from, args.time_to, args.interval)
    if args.format == 'json':
        print_json(candles)
        return
    if not candles:
        print("No swaps found for this token in the requested range")
        return
    table_data = [
        [format_ts(c.timestamp), f"{c.open:.10g}", f"{c.high:.10g}", f"{c.low:.10g}", f"{c.close:.10g}",
         format_usd(c.volume), f"{c.net_flow:,.2f}"]
        for c in candles
    ]
    headers = ['Time', 'Open', 'High', 'Low', 'Close', 'Volume', 'Net Flow']
    print(tabulate(table_data, headers=headers, tablefmt='simple'))


def show_transactions(analytics: SwapAnalytics, args):
    opts = TransactionFilter(
        period=args.period,
        dexes=args.dexes,
        wallet_addresses=args.wallets,
        token_addresses=args.tokens
    )
    swaps = analytics.enrich_transactions(analytics.fetch_transactions(opts))
    if args.format == 'json':
        print_json(swaps)
        return
    if not swaps:
        print("No swaps found for the specified filters")
        return
    table_data = [
        [format_ts(s.time), s.wallet_address, s.token_in_address, s.token_out_address, format_usd(s.value_usd)]
        for s in swaps[:args.limit]
    ]
    headers = ['Time', 'Wallet', 'Token In', 'Token Out', 'Value']
    print(tabulate(table_data, headers=headers, tablefmt='grid'))
    print(f"\nShowing {len(table_data)} of {len(swaps)} swaps")


def main():
    parser = argparse.ArgumentParser(
        description='Query swap analytics from the data warehouse',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Tokens with the largest net inflow over the last hour
  python -m swapstats.main tokens --period 1h

  # Most active wallets today, as JSON
  python -m swapstats.main wallets --period 1d --format json

  # 15 minute candles for one token
  python -m swapstats.main ohlcv <mint> --from 1760000000 --to 1760086400 --interval 15m
        """
    )
    parser.add_argument('--format', choices=['table', 'json'], default='table',
                        help='Output format (default: table)')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    def add_window_args(sub):
        sub.add_argument('--period', type=parse_period, default='5m', help='Lookback period (default: 5m)')
        sub.add_argument('--dexes', nargs='+', default=['raydium', 'jupiter', 'pump'],
                         help='DEXes to include (default: all)')
        sub.add_argument('--tokens', nargs='+', help='Only these token addresses')
        sub.add_argument('--limit', type=int, default=100, help='Rows to show (default: 100)')

    tokens = subparsers.add_parser('tokens', help='Per-token flow statistics')
    add_window_args(tokens)
    tokens.add_argument('--sort-by', choices=['netFlow', 'volume', 'txCount', 'uniqueMakers', 'priceChange'],
                        default='netFlow')
    tokens.add_argument('--sort-order', choices=['asc', 'desc'], default='desc')
    tokens.add_argument('--min-market-cap', type=float)
    tokens.add_argument('--max-market-cap', type=float)
    tokens.set_defaults(handler=show_tokens)

    wallets = subparsers.add_parser('wallets', help='Per-wallet performance')
    add_window_args(wallets)
    wallets.add_argument('--wallets', nargs='+', help='Only these wallet addresses')
    wallets.add_argument('--sort-by', choices=['volume', 'pnl', 'txCount', 'tokensTraded', 'avgHoldTime',
                                               'avgTradeSize'], default='volume')
    wallets.add_argument('--sort-order', choices=['asc', 'desc'], default='desc')
    wallets.set_defaults(handler=show_wallets)

    ohlcv = subparsers.add_parser('ohlcv', help='OHLCV candles for one token')
    ohlcv.add_argument('token', help='Token address')
    ohlcv.add_argument('--from', dest='time_from', type=int, required=True, help='Start (epoch seconds)')
    ohlcv.add_argument('--to', dest='time_to', type=int, required=True, help='End (epoch seconds)')
    ohlcv.add_argument('--interval', default='15m', help='Candle interval (default: 15m)')
    ohlcv.set_defaults(handler=show_ohlcv)

    txns = subparsers.add_parser('txns', help='Raw swaps')
    add_window_args(txns)
    txns.add_argument('--wallets', nargs='+', help='Only these wallet addresses')
    txns.set_defaults(handler=show_transactions)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        analytics = SwapAnalytics.from_env()
        args.handler(analytics, args)
    except (SwapStatsError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
