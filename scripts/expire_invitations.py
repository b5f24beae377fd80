#!/usr/bin/env python3
"""Relabel pending invitations that are past their expiry as expired.

Safe to run from cron at any interval; acceptance checks expiry at read time
regardless of whether this has run.
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from sqlalchemy.orm import Session
from orgaccess.core.logging_config import configure_logging
from orgaccess.db.session import SessionLocal
from orgaccess.services.invitations import expire_stale_invitations


def main():
    configure_logging()
    db: Session = SessionLocal()
    try:
        count = expire_stale_invitations(db)
        print(f"Expired {count} invitation(s)")
    finally:
        db.close()


if __name__ == "__main__":
    main()
