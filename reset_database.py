#!/usr/bin/env python3
"""
Database Reset Script
Clears the snapshot store and recreates its tables
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from sqlalchemy.exc import OperationalError

from zkmerkle.config import get_settings
from zkmerkle.storage.database import DatabaseManager


def reset_database():
    """Drop and recreate the tree snapshot tables"""
    database_url = get_settings().database_url
    print(f"🔄 Resetting database at {database_url}...")

    db = DatabaseManager(database_url)

    session = db.get_session()
    try:
        existing = len(db.list_snapshots(session, limit=None))
    except OperationalError:
        # Tables not created yet
        existing = 0
    finally:
        session.close()

    print("  ⚠️  Dropping all tables...")
    db.drop_tables()

    print("  ✨ Creating tables...")
    db.create_tables()

    print(f"\n✅ Database reset complete! Removed {existing} snapshot(s).")


if __name__ == "__main__":
    try:
        reset_database()
    except KeyboardInterrupt:
        print("\n\n⚠️  Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        sys.exit(1)
