#!/usr/bin/env python3
"""
Grant or revoke admin access, optionally minting a bearer token.

Usage:
    python scripts/promote_admin.py --email admin@lightfriend.ai
    python scripts/promote_admin.py --user-id 34 --token
    python scripts/promote_admin.py --user-id 34 --revoke
    python scripts/promote_admin.py --list
"""
import argparse
import sys

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from lightfriend.core.audit import log_audit_event
from lightfriend.core.security import create_access_token
from lightfriend.db.session import SessionLocal, session_scope
from lightfriend.models.models import User


def set_admin(email: str | None = None, user_id: int | None = None, admin: bool = True, token: bool = False) -> bool:
    db = SessionLocal()
    try:
        if email:
            user = db.scalar(select(User).where(User.email == email))
            identifier = f"email={email}"
        elif user_id:
            user = db.get(User, user_id)
            identifier = f"id={user_id}"
        else:
            print("❌ Must provide either --email or --user-id")
            return False

        if not user:
            print(f"❌ User not found: {identifier}")
            return False

        if user.is_admin == admin:
            print(f"✅ No change needed: {user.email} (ID: {user.id}) is_admin={user.is_admin}")
        else:
            user.is_admin = admin
            db.commit()
            log_audit_event("admin.cli.set_admin", user_id=None, target_user_id=user.id, is_admin=admin)
            print(f"✅ {'Promoted' if admin else 'Demoted'} user:")
            print(f"   ID: {user.id}")
            print(f"   Email: {user.email}")
            print(f"   Phone: {user.phone_number}")
            print(f"   is_admin: {user.is_admin}")

        if token:
            print(f"\nBearer token:\n{create_access_token(user.id)}")
        return True

    except SQLAlchemyError as e:
        db.rollback()
        print(f"❌ Error: {e}")
        return False
    finally:
        db.close()


def list_admins() -> None:
    with session_scope() as db:
        admins = db.scalars(select(User).where(User.is_admin.is_(True)).order_by(User.id)).all()
        print("\n=== ADMIN USERS ===")
        if admins:
            for u in admins:
                print(f"  ID: {u.id}, Email: {u.email}, Phone: {u.phone_number}")
        else:
            print("  (none)")
        print()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Grant or revoke admin access")
    parser.add_argument("--email", help="User email address")
    parser.add_argument("--user-id", type=int, help="User ID")
    parser.add_argument("--revoke", action="store_true", help="Remove admin access instead of granting it")
    parser.add_argument("--token", action="store_true", help="Print a bearer token for the user")
    parser.add_argument("--list", action="store_true", help="List current admins")

    args = parser.parse_args()

    if args.list:
        list_admins()
    elif args.email or args.user_id:
        success = set_admin(email=args.email, user_id=args.user_id, admin=not args.revoke, token=args.token)
        sys.exit(0 if success else 1)
    else:
        parser.print_help()
        sys.exit(1)
