"""
Issue a bearer token for an acting role (local/staging use).

Usage:
  python scripts/issue_token.py vc "Vice Chancellor"
  python scripts/issue_token.py employee "Alice Smith" --employee-id e1 --minutes 30
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from hrportal.core.deps import KNOWN_ROLES
from hrportal.core.security import create_access_token


def main():
    parser = argparse.ArgumentParser(description="Issue a bearer token for the workflow API")
    parser.add_argument("role", choices=sorted(KNOWN_ROLES))
    parser.add_argument("name", help="Display name recorded on chain steps")
    parser.add_argument("--employee-id", default=None, help="Subject id, for employee inboxes")
    parser.add_argument("--minutes", type=int, default=None, help="Expiry override in minutes")
    args = parser.parse_args()

    claims = {"sub": args.name, "role": args.role}
    if args.employee_id:
        claims["employee_id"] = args.employee_id
    print(create_access_token(claims, expires_minutes=args.minutes))


if __name__ == "__main__":
    main()
