#!/usr/bin/env python3
"""
Generate a VAPID key pair for Web Push and print the env lines to configure it.

Usage:
  python3 scripts/generate_vapid.py >> backend/.env

The public key is the uncompressed P-256 point the browser expects as
applicationServerKey; the private key is the raw 32-byte scalar. Both are
base64url without padding.
"""
from __future__ import annotations

import argparse

from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid
from py_vapid.utils import b64urlencode


def generate() -> tuple[str, str]:
    vapid = Vapid()
    vapid.generate_keys()
    public_raw = vapid.public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    private_raw = vapid.private_key.private_numbers().private_value.to_bytes(32, "big")
    return b64urlencode(public_raw), b64urlencode(private_raw)


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate VAPID keys for Web Push")
    parser.add_argument("--subject", default="mailto:admin@example.com", help="Contact URI sent in the VAPID claims")
    args = parser.parse_args()

    public_key, private_key = generate()
    print(f"LS_VAPID_PUBLIC_KEY={public_key}")
    print(f"LS_VAPID_PRIVATE_KEY={private_key}")
    print(f"LS_VAPID_SUBJECT={args.subject}")


if __name__ == "__main__":
    main()
