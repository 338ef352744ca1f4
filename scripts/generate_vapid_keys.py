#!/usr/bin/env python3
"""Generate the deployment VAPID keypair.

Prints env lines to paste into .env. Run once per deployment; the
service only ever loads these keys, it never creates them.

Usage:
    uv run scripts/generate_vapid_keys.py [subject]

Arguments:
    subject   contact URI for the sub claim (default mailto:noreply@example.com)
"""

from __future__ import annotations

import sys

from pushwire.webpush.vapid import (
    generate_vapid_keys,
    load_vapid_keys,
    validate_subject,
)


def main() -> None:
    subject = sys.argv[1] if len(sys.argv) > 1 else "mailto:noreply@example.com"
    validate_subject(subject)

    public_key, private_key = generate_vapid_keys()
    load_vapid_keys(public_key, private_key)

    print(f"VAPID_PUBLIC_KEY={public_key}")
    print(f"VAPID_PRIVATE_KEY={private_key}")
    print(f"VAPID_SUBJECT={subject}")


if __name__ == "__main__":
    main()
