#!/usr/bin/env python3
"""List all registered users with their plan and credit balances."""

from sqlalchemy import desc, select

from lightfriend.db.session import SessionLocal
from lightfriend.models.models import User
from lightfriend.services.credits import estimate_usage


def main():
    db = SessionLocal()
    try:
        users = db.scalars(select(User).order_by(desc(User.created_at))).all()

        print('\n' + '=' * 80)
        print('REGISTERED USERS')
        print('=' * 80 + '\n')

        if not users:
            print('No users found in database.\n')
            return

        for i, user in enumerate(users, 1):
            plan = user.sub_tier.plan_name if user.sub_tier else 'No subscription'
            purchased = estimate_usage(user.credits or 0.0)
            print(f'{i}. {user.nickname or "N/A"}{" [admin]" if user.is_admin else ""}')
            print(f'   Email: {user.email}')
            print(f'   Phone: {user.phone_number}')
            print(f'   Plan: {plan} (expires: {user.time_to_live or "never"})')
            print(f'   Discount: {user.discount_tier.value if user.discount_tier else "none"}')
            print(f'   Credits: {user.credits:.2f} purchased (~{purchased.messages} messages), '
                  f'{user.credits_left:.2f} monthly, {user.msgs_left} notifications')
            print(f'   Created: {user.created_at}')
            print(f'   ID: {user.id}')
            print('-' * 80)

        print(f'\nTotal Users: {len(users)}\n')

    finally:
        db.close()


if __name__ == '__main__':
    main()
