#!/usr/bin/env python

"""
    Creates the first Shelfmark administrator and, optionally, the
    catalog categories librarians file books under.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import argparse
import sys
from dotenv import load_dotenv

load_dotenv()

from shelfmark.configs import ADMIN_USERNAME, ADMIN_PASSWORD
from shelfmark.core import staff as accounts
from shelfmark.core.db import session, init as db_init
from shelfmark.core.exceptions import ShelfmarkError
from shelfmark.core.models import Category


def main():
    parser = argparse.ArgumentParser(description="Create the first Shelfmark administrator")
    parser.add_argument("--username", default=ADMIN_USERNAME)
    parser.add_argument("--password", default=ADMIN_PASSWORD)
    parser.add_argument("--categories", default="",
                        help="Comma separated list of catalog categories to create")
    args = parser.parse_args()

    if not args.username or not args.password:
        parser.error("--username and --password (or ADMIN_USERNAME/ADMIN_PASSWORD) are required")

    try:
        db_init()
        admin = accounts.create_admin(session, args.username, args.password)
        print(f"Success! Administrator '{admin.username}' created.")
        for name in filter(None, (c.strip() for c in args.categories.split(","))):
            if not session.query(Category).filter(Category.name == name).first():
                session.add(Category(name=name))
        session.commit()
    except ShelfmarkError as e:
        session.rollback()
        print(f"Error: {e.detail}", file=sys.stderr)
        sys.exit(1)
    finally:
        session.close()

if __name__ == "__main__":
    main()
