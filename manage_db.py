#!/usr/bin/env python3
"""
Database management commands for the Roofing Sales Dashboard

Usage:
    python manage_db.py upgrade [revision]   Apply Alembic migrations (default: head)
    python manage_db.py check-tables         List tables and row counts
    python manage_db.py init                 Create tables directly from the models
    python manage_db.py seed                 Create the default admin field user
    python manage_db.py clear-seed-data      Delete users and companies
"""

import os
import sys
import argparse

from sqlalchemy import inspect, text

ALEMBIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'alembic')


def _database_url():
    from database.connection import normalize_database_url

    url = normalize_database_url(os.environ.get('DATABASE_URL'))
    if not url:
        print("❌ DATABASE_URL not set. Database is not configured.")
        print("Set the DATABASE_URL environment variable and try again.")
        sys.exit(1)
    return url


def alembic_config(url):
    from alembic.config import Config

    cfg = Config()
    cfg.set_main_option('script_location', ALEMBIC_DIR)
    # ConfigParser interpolation treats % specially
    cfg.set_main_option('sqlalchemy.url', url.replace('%', '%%'))
    return cfg


def upgrade(revision='head'):
    from alembic import command

    url = _database_url()
    print(f"🚀 Upgrading database to {revision}")
    command.upgrade(alembic_config(url), revision)
    print("✅ Migrations applied")


def check_tables():
    """Report each model table as present (with row count) or missing"""
    from database.connection import configure_engine
    from database.models import Base

    engine = configure_engine(_database_url())
    existing = set(inspect(engine).get_table_names())
    expected = sorted(Base.metadata.tables)

    missing = [table for table in expected if table not in existing]
    print(f"📋 {len(expected) - len(missing)}/{len(expected)} expected tables present")
    with engine.connect() as conn:
        for table in expected:
            if table in existing:
                count = conn.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar()
                print(f"   ✅ {table}: {count} rows")
            else:
                print(f"   ❌ {table}: missing")

    if missing:
        print("ℹ️  Run 'upgrade' to create the missing tables.")
    return missing


def init():
    from database.connection import configure_engine, init_db

    configure_engine(_database_url())
    init_db()
    print("✅ Tables created")


def seed():
    from database.connection import configure_engine
    from database.seed import seed_database

    configure_engine(_database_url())
    seed_database()
    print("✅ Seed data created")


def clear_seed_data(assume_yes=False):
    from database.connection import configure_engine
    from database.seed import clear_seed_data as clear

    configure_engine(_database_url())

    if not assume_yes:
        response = input("⚠️  This deletes all users, companies, leads and mobile users. Continue? (yes/no): ")
        if response.lower() != 'yes':
            print("❌ Cancelled")
            return False

    users_deleted, companies_deleted = clear()
    print(f"🗑️  Deleted {users_deleted} users and {companies_deleted} companies")
    return True


def build_parser():
    parser = argparse.ArgumentParser(description='Roofing Sales Dashboard database management')
    subparsers = parser.add_subparsers(dest='command', required=True)

    upgrade_parser = subparsers.add_parser('upgrade', help='Apply Alembic migrations')
    upgrade_parser.add_argument('revision', nargs='?', default='head')

    subparsers.add_parser('check-tables', help='List tables and row counts')
    subparsers.add_parser('init', help='Create tables from the models')
    subparsers.add_parser('seed', help='Create the default admin user')

    clear_parser = subparsers.add_parser('clear-seed-data', help='Delete users and companies')
    clear_parser.add_argument('--yes', action='store_true', help='Skip the confirmation prompt')

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.command == 'upgrade':
        upgrade(args.revision)
    elif args.command == 'check-tables':
        check_tables()
    elif args.command == 'init':
        init()
    elif args.command == 'seed':
        seed()
    elif args.command == 'clear-seed-data':
        clear_seed_data(assume_yes=args.yes)
    return 0


if __name__ == '__main__':
    sys.exit(main())
