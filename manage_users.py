#!/usr/bin/env python3
"""
Maintenance commands for the Campus Hub SQLite database.

This script never reads or reveals existing passwords.

Usage:
    python manage_users.py inspect --email student@example.com
    python manage_users.py set-role --email organizer@example.com --role organizer
    python manage_users.py reset-password --email admin@example.com
    python manage_users.py recount

``recount`` recomputes every event's stored attendee count from the
registration table.  If ``--password`` is omitted for
``reset-password`` you will be prompted for it.
"""

import argparse
import asyncio
import getpass
import sys

from campus_hub_api.app.core.db import get_connection, init_db
from campus_hub_api.app.core.roles import Role, parse_role
from campus_hub_api.app.services.event_service import EventService
from campus_hub_api.app.services.user_service import UserService


def _find_user_id(email: str) -> int:
    conn = get_connection()
    try:
        row = conn.execute("SELECT id FROM users WHERE email = ?", (email.strip().lower(),)).fetchone()
    finally:
        conn.close()
    if not row:
        print(f"[!] No user found with email: {email}", file=sys.stderr)
        sys.exit(2)
    return row["id"]


def cmd_inspect(args: argparse.Namespace) -> None:
    user_id = _find_user_id(args.email)
    conn = get_connection()
    try:
        user = conn.execute(
            "SELECT id, email, full_name, role, signup_role, disabled, created_at FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        events = conn.execute(
            "SELECT COUNT(*) FROM event_attendees WHERE user_id = ?", (user_id,)
        ).fetchone()[0]
        communities = conn.execute(
            "SELECT COUNT(*) FROM community_members WHERE user_id = ?", (user_id,)
        ).fetchone()[0]
        bookings = conn.execute(
            "SELECT COUNT(*) FROM bookings WHERE user_id = ? AND status != 'cancelled'", (user_id,)
        ).fetchone()[0]
    finally:
        conn.close()
    for key in user.keys():
        print(f"{key:>12}: {user[key]}")
    print(f"{'events':>12}: {events}")
    print(f"{'communities':>12}: {communities}")
    print(f"{'bookings':>12}: {bookings}")
    if user["role"] != user["signup_role"]:
        print("[!] role differs from signup_role; a role sync would change it")


def cmd_set_role(args: argparse.Namespace) -> None:
    role = parse_role(args.role)
    if role is None:
        print(f"[!] Unknown role: {args.role}", file=sys.stderr)
        sys.exit(1)
    user_id = _find_user_id(args.email)
    asyncio.run(UserService.assign_role(user_id, role))
    print(f"[+] Role of {args.email} set to {role.value}")


def cmd_reset_password(args: argparse.Namespace) -> None:
    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if not new_password:
        print("[!] Empty password is not allowed.", file=sys.stderr)
        sys.exit(1)
    try:
        asyncio.run(UserService.set_password(args.email, new_password))
    except ValueError as exc:
        print(f"[!] {exc}", file=sys.stderr)
        sys.exit(2)
    print(f"[+] Password updated for user: {args.email}")


def cmd_recount(args: argparse.Namespace) -> None:
    updated = asyncio.run(EventService.recount_attendees())
    print(f"[+] Attendee counts refreshed for {updated} event(s)")


def main() -> None:
    ap = argparse.ArgumentParser(description="Campus Hub user and data maintenance.")
    sub = ap.add_subparsers(dest="command", required=True)

    p_inspect = sub.add_parser("inspect", help="Show a user's record and activity counts")
    p_inspect.add_argument("--email", required=True)
    p_inspect.set_defaults(func=cmd_inspect)

    p_role = sub.add_parser("set-role", help="Assign a role (also rewrites the signup role)")
    p_role.add_argument("--email", required=True)
    p_role.add_argument("--role", required=True, choices=[role.value for role in Role])
    p_role.set_defaults(func=cmd_set_role)

    p_reset = sub.add_parser("reset-password", help="Set a new password hash")
    p_reset.add_argument("--email", required=True)
    p_reset.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    p_reset.set_defaults(func=cmd_reset_password)

    p_recount = sub.add_parser("recount", help="Recompute stored event attendee counts")
    p_recount.set_defaults(func=cmd_recount)

    args = ap.parse_args()
    init_db()
    args.func(args)


if __name__ == "__main__":
    main()
