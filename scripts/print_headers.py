#!/usr/bin/env python3
"""
Print Composed Security Headers

Loads the header policy the same way the application does (environment,
.env, CSP_POLICY_FILE) and prints the headers for a sample nonce.
Useful for reviewing a policy before deploying it.

Usage:
    python scripts/print_headers.py
    python scripts/print_headers.py --policy-file policy.example.json --enforce
    python scripts/print_headers.py --token abc123
"""

import argparse
import sys

from csp_headers.config import Settings, build_policy, load_policy, read_policy_file
from csp_headers.exceptions import ConfigError
from csp_headers.services.header_service import compose_headers
from csp_headers.services.token_service import generate_token


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Print composed security headers")
    parser.add_argument(
        "--policy-file",
        "-p",
        help="JSON policy file (overrides environment settings)",
    )
    parser.add_argument(
        "--token",
        "-t",
        help="Nonce to use (a fresh random one by default)",
    )
    parser.add_argument(
        "--enforce",
        action="store_true",
        help="Print the enforcing Content-Security-Policy header name",
    )
    args = parser.parse_args(argv)

    try:
        if args.policy_file:
            values = Settings().policy_values()
            values.update(read_policy_file(args.policy_file))
            policy = build_policy(values)
        else:
            policy = load_policy()
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    if args.enforce:
        policy = policy.model_copy(update={"enforce": True})

    token = args.token or generate_token()
    for name, value in compose_headers(policy, token):
        print(f"{name}: {value}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
