#!/usr/bin/env python3
"""
Print a bearer token for local development.

Usage:
    python scripts/issue_token.py <user-id> [--minutes N]

The token is signed with JWT_SECRET_KEY from the environment, so run it
with the same environment as the API. The user must exist in storage
(for example from the seed file) or the API will answer 401.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from recipebox.core.security import create_access_token


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Issue a development access token.")
    parser.add_argument("user_id", help="ID of the user the token authenticates")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Lifetime in minutes (default: ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    args = parser.parse_args(argv)

    print(create_access_token(args.user_id, expires_minutes=args.minutes))
    return 0


if __name__ == "__main__":
    sys.exit(main())
