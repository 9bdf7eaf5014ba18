#!/usr/bin/env python
"""Store or remove the CRM login used by historical sync in the OS keychain.

Values already present in the environment (or ``.env``) are offered as
defaults; anything else is prompted for. Secrets are never echoed.

Usage:
    python -m scripts.store_crm_credentials
    python -m scripts.store_crm_credentials --from-env
    python -m scripts.store_crm_credentials --delete
    python -m scripts.store_crm_credentials --status
"""

import argparse
import getpass
import os
import sys
from pathlib import Path

from dotenv import dotenv_values

from services.credential_manager import (
    CREDENTIAL_KEYS,
    delete_credential,
    set_credential,
    stored_keys,
)

# Prompt order; SF_DOMAIN is optional ("test" for sandboxes)
PROMPTS = [
    ("SF_USERNAME", "CRM username", False),
    ("SF_PASSWORD", "CRM password", True),
    ("SF_SECURITY_TOKEN", "CRM security token", True),
    ("SF_DOMAIN", "CRM login domain (blank for production, 'test' for sandbox)", False),
]


def load_env_values(env_path: Path) -> dict[str, str]:
    """Credential values from the process environment, then the ``.env`` file."""
    file_values = dotenv_values(env_path) if env_path.exists() else {}
    values = {}
    for key in CREDENTIAL_KEYS:
        value = os.environ.get(key) or file_values.get(key)
        if value:
            values[key] = value
    return values


def prompt_values(defaults: dict[str, str]) -> dict[str, str]:
    values = {}
    for key, label, secret in PROMPTS:
        default = defaults.get(key, "")
        if secret:
            hint = " [keep current]" if default else ""
            value = getpass.getpass(f"{label}{hint}: ") or default
        else:
            hint = f" [{default}]" if default else ""
            value = input(f"{label}{hint}: ").strip() or default
        if value:
            values[key] = value
    return values


def store(values: dict[str, str]) -> int:
    """Store each value; returns the number of failures."""
    failures = 0
    for key, _, _ in PROMPTS:
        if key not in values:
            print(f"  - {key} (skipped)")
            continue
        if set_credential(key, values[key]):
            print(f"  + {key}")
        else:
            print(f"  ! {key} (failed)")
            failures += 1
    return failures


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Store the CRM login for historical sync in the OS keychain",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--from-env",
        action="store_true",
        help="Copy values from the environment / .env without prompting",
    )
    group.add_argument(
        "--delete",
        action="store_true",
        help="Remove all stored CRM credentials",
    )
    group.add_argument(
        "--status",
        action="store_true",
        help="List which CRM credentials are in the keychain",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(__file__).parent.parent / ".env",
        help="Path to .env file (default: backend/.env)",
    )
    args = parser.parse_args(argv)

    if args.status:
        present = set(stored_keys())
        for key in CREDENTIAL_KEYS:
            print(f"  {key}: {'stored' if key in present else 'missing'}")
        return

    if args.delete:
        for key, _, _ in PROMPTS:
            removed = delete_credential(key)
            print(f"  {'x' if removed else '-'} {key}")
        return

    defaults = load_env_values(args.env_file)
    values = defaults if args.from_env else prompt_values(defaults)
    if not values:
        print("Nothing to store.")
        sys.exit(1)

    print("Storing CRM credentials in keychain:")
    if store(values):
        sys.exit(1)


if __name__ == "__main__":
    main()
