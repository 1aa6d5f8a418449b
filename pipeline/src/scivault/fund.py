#!/usr/bin/env python3
"""
Check the uploader balance and optionally fund it.

Usage:
    python -m scivault.fund
    python -m scivault.fund --amount 10000000          # lamports; asks first
    python -m scivault.fund --amount 10000000 --yes
"""

import argparse
import sys

from scivault.config import load_config
from scivault.publish import uploader_from_config
from scivault.storage import StorageError
from scivault.utils import positive_int


def confirm(question: str) -> bool:
    answer = input(question).strip().lower()
    return answer in ("y", "yes")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Show uploader balance and fund it")
    parser.add_argument("--amount", type=positive_int, help="Amount to fund, in atomic units")
    parser.add_argument("--yes", action="store_true", help="Fund without asking")
    args = parser.parse_args(argv)

    config = load_config()
    uploader = uploader_from_config(config)

    try:
        if config.wallet_address:
            print(f"\nWallet: {config.wallet_address}")
            print(uploader.balance())
        else:
            print("WALLET_ADDRESS not set; skipping balance check")

        if args.amount is None:
            return

        if not args.yes and not confirm(f"\nFund {args.amount} atomic units to Irys? (yes/no): "):
            print("Funding skipped.")
            return

        print(f"\nFunding {args.amount}...")
        tx_id = uploader.fund(str(args.amount))
    except StorageError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"✓ Fund successful! Transaction ID: {tx_id}")


if __name__ == "__main__":
    main()
