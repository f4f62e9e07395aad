"""
Print the effective permissions of a role or a stored user record, and check
that the permission catalog and role defaults are consistent.

Usage:
    python scripts/permissions_report.py --check
    python scripts/permissions_report.py --role engineer
    python scripts/permissions_report.py --user-json user.json [--json]
"""
import sys
import os
import argparse
import json
from typing import List, Optional

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sitecontrol.logging import bind_context, setup_logging
from sitecontrol.services.permission_catalog import (
    ADMIN_SUPERSEDING_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    get_role_description,
    known_roles,
    permission_ids,
)
from sitecontrol.services.permissions import explain_user_permissions, generate_permissions_report


def check_catalog() -> List[str]:
    """Return a list of problems with the catalog; empty when consistent."""
    problems: List[str] = []
    known = permission_ids()
    for role, defaults in DEFAULT_ROLE_PERMISSIONS.items():
        unknown = sorted(set(defaults) - known)
        if unknown:
            problems.append(f"role '{role}' references unknown permissions: {', '.join(unknown)}")
        if len(set(defaults)) != len(defaults):
            problems.append(f"role '{role}' lists the same permission twice")
    missing = sorted(ADMIN_SUPERSEDING_PERMISSIONS - known)
    if missing:
        problems.append(f"admin superseding permissions not in catalog: {', '.join(missing)}")
    return problems


def print_report(user: dict, as_json: bool = False) -> None:
    report = generate_permissions_report(user)
    explanation = explain_user_permissions(user)
    if as_json:
        payload = {
            "explanation": explanation.model_dump(mode="json"),
            "report": report.model_dump(mode="json"),
        }
        print(json.dumps(payload, indent=2))
        return

    print(f"Role: {report.role} - {get_role_description(report.role)}")
    print(f"Mode: {explanation.mode.value}")
    print(explanation.explanation)
    print(f"Total: {report.total_permissions}")
    for category, perms in sorted(report.permissions_by_category.items()):
        print(f"  [{category}] {', '.join(p.key for p in perms)}")
    if report.extra_from_role:
        print(f"[EXTRA] {', '.join(p.key for p in report.extra_from_role)}")
    if report.missing_from_role:
        print(f"[MISSING] {', '.join(p.key for p in report.missing_from_role)}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Permission catalog report")
    parser.add_argument("--check", action="store_true", help="Check catalog consistency only")
    parser.add_argument("--role", choices=known_roles(), help="Report the defaults of a role")
    parser.add_argument("--user-json", help="Path to a JSON file holding one user record")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args(argv)

    setup_logging(args.log_level, cache_loggers=False)
    bind_context(script="permissions_report")

    problems = check_catalog()
    for problem in problems:
        print(f"[ERROR] {problem}")
    if args.check or problems:
        if not problems:
            print(f"[OK] {len(permission_ids())} permissions, {len(known_roles())} roles")
        return 1 if problems else 0

    if args.user_json:
        try:
            with open(args.user_json, encoding="utf-8") as fh:
                user = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            print(f"[ERROR] Could not read {args.user_json}: {e}")
            return 2
        if not isinstance(user, dict):
            print("[ERROR] User file must hold a JSON object")
            return 2
    elif args.role:
        user = {"role": args.role}
    else:
        parser.print_help()
        return 2

    bind_context(user_id=user.get("id"), role=user.get("role"))
    print_report(user, as_json=args.json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
