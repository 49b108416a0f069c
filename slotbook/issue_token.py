"""Print a bearer token for a slot owner, creating the owner if needed.

Usage:
    python -m slotbook.issue_token owner@example.com --name "Jane Owner"
"""
import argparse
import sys

from slotbook.auth.jwt_handler import create_owner_token, normalize_owner_email
from slotbook.core import config
from slotbook.database import Database
from slotbook.models.user import User


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='python -m slotbook.issue_token')
    parser.add_argument('email')
    parser.add_argument('--name', default='')
    parser.add_argument('--database-url', default=config.DATABASE_URL)
    parser.add_argument('--expires-minutes', type=int, default=None)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    email = normalize_owner_email(args.email)
    if '@' not in email:
        print('A valid email address is required.', file=sys.stderr)
        sys.exit(1)

    database = Database(args.database_url)
    try:
        database.create_all()
        db = database.session()
        try:
            owner = db.query(User).filter(User.email == email).first()
            if owner is None:
                owner = User(email=email, full_name=args.name.strip())
                db.add(owner)
                db.commit()
                print(f'Created owner {email} (id {owner.id})', file=sys.stderr)
            owner_id = owner.id
        finally:
            db.close()
    finally:
        database.dispose()

    print(create_owner_token(email, owner_id=owner_id, expires_minutes=args.expires_minutes))


if __name__ == '__main__':
    main()
