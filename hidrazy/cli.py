"""
Command-line interface for Hidrazy.

Provides commands for:
- Showing a learner's usage
- Checking a request against the quotas
- Recording a usage entry by hand
- Issuing a development access token
"""

import argparse
import json
import sys
from datetime import timedelta

from hidrazy.auth import create_access_token
from hidrazy.config import get_db_path, get_jwt_secret
from hidrazy.monitor import CostMonitor
from hidrazy.policy import RequestType
from hidrazy.storage import LedgerUnavailableError, SQLiteLedger


def _monitor(args) -> CostMonitor:
    return CostMonitor(SQLiteLedger(db_path=args.db))


def cmd_usage(args):
    """Print usage statistics for a user."""
    report = _monitor(args).get_usage(args.user_id)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return

    limits = report.limits
    print("\n" + "=" * 60)
    print(f"USAGE FOR {args.user_id}")
    print("=" * 60)
    print(f"Monthly cost:        ${report.monthly.total_cost:.4f}")
    print(f"Monthly calls:       {report.monthly.total_calls}")
    print(f"Premium calls:       {report.monthly.premium_model_calls} / {limits.monthly_premium_model_calls}")
    print(f"TTS characters:      {report.monthly.tts_units} / {limits.monthly_tts_units}")
    print(f"Turns today:         {report.daily.conversation_turns} / {limits.daily_conversation_turns}")
    print(f"Cost today:          ${report.daily.daily_cost:.4f}")
    if report.warnings:
        print("-" * 60)
        for warning in report.warnings:
            print(f"WARNING: {warning}")
    print("=" * 60)


def cmd_check(args):
    """Check whether a request would be allowed."""
    check = _monitor(args).check_limits(args.user_id, args.request_type)
    print(json.dumps(check.to_dict(), indent=2, ensure_ascii=False))
    if not check.allowed:
        sys.exit(2)


def cmd_record(args):
    """Append a usage entry."""
    entry = _monitor(args).record_usage(
        args.user_id,
        args.model,
        args.request_type,
        input_tokens=args.input_tokens,
        output_tokens=args.output_tokens,
        estimated_cost=args.cost,
    )
    print(f"Recorded {entry.entry_id}: {entry.model_used} ${entry.estimated_cost:.6f}")


def cmd_token(args):
    """Print a signed access token for a user."""
    secret = get_jwt_secret()
    if not secret:
        print("HIDRAZY_JWT_SECRET is not set", file=sys.stderr)
        sys.exit(1)
    print(create_access_token(args.user_id, secret, timedelta(hours=args.hours)))


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Hidrazy: usage limits and cost control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show this month's usage
  hidrazy usage user_123

  # Would a premium chat call be allowed?
  hidrazy check user_123 premium-chat

  # Record a speech synthesis of 120 characters
  hidrazy record user_123 tts-1 --request-type speech-synthesis --input-tokens 120
""",
    )
    parser.add_argument("--db", default=get_db_path(), help="Path to the SQLite ledger")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    usage_parser = subparsers.add_parser("usage", help="Show usage for a user")
    usage_parser.add_argument("user_id")
    usage_parser.add_argument("--json", action="store_true", help="Print the API JSON body")

    check_parser = subparsers.add_parser("check", help="Check a request against the quotas")
    check_parser.add_argument("user_id")
    check_parser.add_argument("request_type", choices=[t.value for t in RequestType])

    record_parser = subparsers.add_parser("record", help="Record a usage entry")
    record_parser.add_argument("user_id")
    record_parser.add_argument("model")
    record_parser.add_argument("--request-type", "-t", default="chat",
                               choices=[t.value for t in RequestType])
    record_parser.add_argument("--input-tokens", "-i", type=int, default=0,
                               help="Input tokens (characters for speech)")
    record_parser.add_argument("--output-tokens", "-o", type=int, default=0)
    record_parser.add_argument("--cost", type=float, default=None,
                               help="Cost in USD (estimated from pricing if omitted)")

    token_parser = subparsers.add_parser("token", help="Issue a development access token")
    token_parser.add_argument("user_id")
    token_parser.add_argument("--hours", type=int, default=24)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "usage": cmd_usage,
        "check": cmd_check,
        "record": cmd_record,
        "token": cmd_token,
    }

    try:
        commands[args.command](args)
    except LedgerUnavailableError as exc:
        print(f"Ledger unavailable: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
