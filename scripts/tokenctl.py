#!/usr/bin/env python3
"""
Operate a token ledger from the command line.

The database and the construction parameters come from a token_config
YAML set (the bundled default unless --config is given).  The caller
identity is taken as given: authenticating it is the host's job.

Usage:
    python3 scripts/tokenctl.py init
    python3 scripts/tokenctl.py info TOKEN_ID [--json]
    python3 scripts/tokenctl.py balance TOKEN_ID ACCOUNT
    python3 scripts/tokenctl.py transfer TOKEN_ID --caller 0xadmin 0xbob 10
    python3 scripts/tokenctl.py mint TOKEN_ID --caller 0xadmin 0xbob 10
    python3 scripts/tokenctl.py release TOKEN_ID --caller 0xadmin
    python3 scripts/tokenctl.py finish-minting TOKEN_ID --caller 0xadmin
    python3 scripts/tokenctl.py events TOKEN_ID [--since 0] [--json]
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

W = 72


def hline(char: str = "=") -> str:
    return char * W


def _add_token(p: argparse.ArgumentParser) -> None:
    p.add_argument("token_id", help="Token UUID printed by 'init'")


def _add_caller(p: argparse.ArgumentParser) -> None:
    p.add_argument("--caller", required=True, help="Verified caller identity")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Token ledger administration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, help="YAML configuration set")
    parser.add_argument("--database-url", help="Override the configured database URL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create tables and a token from the configuration")

    p = sub.add_parser("info", help="Show metadata, supply and phase flags")
    _add_token(p)
    p.add_argument("--json", action="store_true", help="Output as JSON")

    p = sub.add_parser("balance", help="Show one account's balance")
    _add_token(p)
    p.add_argument("account")

    for name in ("transfer", "mint"):
        p = sub.add_parser(name, help=f"{name.capitalize()} tokens")
        _add_token(p)
        _add_caller(p)
        p.add_argument("to")
        p.add_argument("amount", type=int)

    p = sub.add_parser("release", help="Open transfers (closes minting)")
    _add_token(p)
    _add_caller(p)

    p = sub.add_parser("finish-minting", help="Close minting permanently")
    _add_token(p)
    _add_caller(p)

    p = sub.add_parser("events", help="List ledger events")
    _add_token(p)
    p.add_argument("--since", type=int, default=0, help="Only events after this seq")
    p.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def _print_info(info) -> None:
    print(hline())
    print(f"  {info.name} ({info.symbol})  {info.token_id}")
    print(hline("-"))
    print(f"  decimals:          {info.decimals}")
    print(f"  total supply:      {info.total_supply}")
    print(f"  minting finished:  {info.minting_finished}")
    print(f"  released:          {info.released}")
    print(f"  migration:         {info.migration_state.value}")
    print(f"  migration target:  {info.migration_target_id or '-'}")
    print(f"  total migrated:    {info.total_migrated}")
    print(f"  owner:             {info.owner}")
    print(f"  release agent:     {info.release_agent}")
    print(hline())


def _run(args, config) -> int:
    from token_kernel.db.engine import (
        create_tables,
        get_session_factory,
        init_engine_from_url,
    )
    from token_kernel.ledger import TokenLedger

    database_url = args.database_url or config.database.url
    init_engine_from_url(
        database_url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )
    factory = get_session_factory()

    if args.command == "init":
        create_tables()
        params = config.token
        ledger = TokenLedger.create(
            factory,
            administrator=params.administrator,
            name=params.name,
            symbol=params.symbol,
            initial_supply=params.initial_supply,
            decimals=params.decimals,
            mintable=params.mintable,
            release_agent=params.release_agent,
        )
        print(ledger.token_id)
        return 0

    ledger = TokenLedger.open(factory, args.token_id)

    if args.command == "info":
        info = ledger.info()
        if args.json:
            payload = asdict(info)
            payload["token_id"] = str(info.token_id)
            payload["total_supply"] = str(info.total_supply)
            payload["total_migrated"] = str(info.total_migrated)
            payload["migration_state"] = info.migration_state.value
            print(json.dumps(payload, indent=2))
        else:
            _print_info(info)
    elif args.command == "balance":
        print(ledger.balance_of(args.account))
    elif args.command == "transfer":
        receipt = ledger.transfer(args.caller, args.to, args.amount)
        print(f"transferred {receipt.amount} {receipt.sender} -> {receipt.recipient} (event #{receipt.event_seq})")
    elif args.command == "mint":
        receipt = ledger.mint(args.caller, args.to, args.amount)
        print(f"minted {receipt.amount} to {receipt.recipient}; supply {receipt.total_supply}")
    elif args.command == "release":
        changed = ledger.release(args.caller)
        print("released" if changed else "already released")
    elif args.command == "finish-minting":
        changed = ledger.finish_minting(args.caller)
        print("minting finished" if changed else "minting already finished")
    elif args.command == "events":
        events = ledger.events(since_seq=args.since)
        if args.json:
            print(json.dumps(
                [
                    {
                        "seq": e.seq,
                        "event_type": e.event_type,
                        "caller": e.caller,
                        "occurred_at": e.occurred_at.isoformat(),
                        "payload": dict(e.payload),
                    }
                    for e in events
                ],
                indent=2,
            ))
        else:
            for e in events:
                fields = " ".join(f"{k}={v}" for k, v in sorted(e.payload.items()))
                print(f"  #{e.seq:<5} {e.event_type:<28} {e.caller:<16} {fields}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    from token_config import get_active_config
    from token_kernel.exceptions import TokenKernelError
    from token_kernel.logging_config import configure_logging

    try:
        config = get_active_config(args.config)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        print(f"  ERROR: Invalid configuration: {exc}", file=sys.stderr)
        return 1

    configure_logging(level=getattr(logging, config.logging.level))

    try:
        return _run(args, config)
    except TokenKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 2
    except ValueError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
