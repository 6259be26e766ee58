"""
One-time migration: hash legacy plaintext passwords with bcrypt. Run from project root:
  python -m callbook.scripts.migrate_passwords [--dry-run]

Login only accepts bcrypt hashes, so users with plaintext values cannot sign in
until this has run. Safe to run repeatedly; hashed rows are skipped.
"""
import argparse
import logging
import sys

from sqlalchemy import select
from sqlalchemy.orm import Session

from callbook.core.database import SessionLocal
from callbook.core.security import hash_password, is_password_hash
from callbook.models import User

logger = logging.getLogger(__name__)


def migrate_plaintext_passwords(session: Session, dry_run: bool = False) -> int:
    """Replace every non-bcrypt password_hash with its bcrypt hash. Returns rows changed."""
    migrated = 0
    for user in session.scalars(select(User).order_by(User.id)):
        if is_password_hash(user.password_hash):
            continue
        migrated += 1
        logger.info("Hashing legacy password for user_id=%s", user.id)
        if not dry_run:
            user.password_hash = hash_password(user.password_hash or "")
    if dry_run:
        session.rollback()
    else:
        session.commit()
    return migrated


def main() -> int:
    parser = argparse.ArgumentParser(description="Hash legacy plaintext passwords.")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    db = SessionLocal()
    try:
        migrated = migrate_plaintext_passwords(db, dry_run=args.dry_run)
        verb = "Would hash" if args.dry_run else "Hashed"
        print(f"{verb} {migrated} legacy password(s).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
