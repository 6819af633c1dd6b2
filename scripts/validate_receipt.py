#!/usr/bin/env python3
"""
validate_receipt.py
Validate a Google Play receipt from the command line, or refresh the
Android Publisher access token. Configuration comes from the environment (.env).

Usage:
    python scripts/validate_receipt.py --receipt receipt.json [--subscription] [--public-key KEY]
    python scripts/validate_receipt.py --refresh-token
"""

import argparse
import asyncio
import json
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.receipt_validator import receipt_validator


async def validate_receipt(receipt_path: str, public_key: str = None, subscription: bool = False) -> int:
    """
    Validate the receipt stored in a JSON file

    Args:
        receipt_path: File with {"data": ..., "signature": ...}
        public_key: Optional key to try before the sandbox key instead of the live key
        subscription: Look the purchase up as a subscription
    """
    with open(receipt_path, "r") as f:
        receipt = json.load(f)

    await receipt_validator.setup()
    error, result = await receipt_validator.validate_purchase(public_key, receipt, {"subscription": subscription})

    print(json.dumps(result, indent=2))
    if error:
        print(f"❌ Validation failed: {error}", file=sys.stderr)
        return 1

    print(json.dumps(receipt_validator.get_purchase_data(result), indent=2))
    return 0


async def refresh_token() -> int:
    error, result = await receipt_validator.refresh_token()
    if error:
        print(f"❌ Token refresh failed: {error}", file=sys.stderr)
        print(json.dumps(result, indent=2))
        return 1
    print("✅ Access token refreshed")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Validate Google Play in-app purchase receipts")
    parser.add_argument(
        "--receipt",
        help="Path to a JSON file containing the receipt data and signature"
    )
    parser.add_argument(
        "--public-key",
        help="Base64 public key to try instead of the configured live key",
        required=False
    )
    parser.add_argument(
        "--subscription",
        action="store_true",
        help="Check the purchase as a subscription"
    )
    parser.add_argument(
        "--refresh-token",
        action="store_true",
        help="Only refresh the Android Publisher access token"
    )

    args = parser.parse_args()
    if args.refresh_token:
        sys.exit(asyncio.run(refresh_token()))
    if not args.receipt:
        parser.error("--receipt is required unless --refresh-token is given")
    sys.exit(asyncio.run(validate_receipt(args.receipt, args.public_key, args.subscription)))
