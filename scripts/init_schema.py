#!/usr/bin/env python3
"""
Create the ClipStream catalog tables in Snowflake.

Creates channels, videos, video_tags, watch_history and likes if they
don't exist yet. Safe to re-run.

Usage:
    python scripts/init_schema.py
    python scripts/init_schema.py --dry-run

Requires:
    - .env file (or environment) with Snowflake credentials
"""

import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config.settings import get_settings
from src.infrastructure.snowflake.client import SnowflakeConnectionError, get_snowflake_connection
from src.infrastructure.snowflake.repositories import SnowflakeConfig


SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS channels (
        channel_id VARCHAR(36) PRIMARY KEY,
        owner_id VARCHAR(255) NOT NULL UNIQUE,
        name VARCHAR(100) NOT NULL,
        handle VARCHAR(51) NOT NULL UNIQUE,
        description VARCHAR,
        avatar_url VARCHAR,
        subscriber_count NUMBER NOT NULL DEFAULT 0,
        created_at TIMESTAMP_TZ NOT NULL DEFAULT CURRENT_TIMESTAMP()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        video_id VARCHAR(36) PRIMARY KEY,
        owner_id VARCHAR(255) NOT NULL,
        channel_id VARCHAR(36) REFERENCES channels(channel_id),
        title VARCHAR(200) NOT NULL,
        description VARCHAR,
        video_path VARCHAR NOT NULL,
        thumbnail_path VARCHAR,
        privacy VARCHAR(16) NOT NULL DEFAULT 'public',
        view_count NUMBER NOT NULL DEFAULT 0,
        published_at TIMESTAMP_TZ,
        created_at TIMESTAMP_TZ NOT NULL DEFAULT CURRENT_TIMESTAMP()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS video_tags (
        video_id VARCHAR(36) NOT NULL REFERENCES videos(video_id),
        position NUMBER NOT NULL,
        tag VARCHAR(100) NOT NULL,
        PRIMARY KEY (video_id, position)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS watch_history (
        history_id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(255) NOT NULL,
        video_id VARCHAR(36) NOT NULL REFERENCES videos(video_id),
        watched_at TIMESTAMP_TZ NOT NULL DEFAULT CURRENT_TIMESTAMP()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS likes (
        video_id VARCHAR(36) NOT NULL REFERENCES videos(video_id),
        user_id VARCHAR(255) NOT NULL,
        is_like BOOLEAN NOT NULL,
        created_at TIMESTAMP_TZ NOT NULL DEFAULT CURRENT_TIMESTAMP(),
        PRIMARY KEY (video_id, user_id)
    )
    """,
]


def create_schema(dry_run: bool = False) -> bool:
    settings = get_settings()

    if dry_run:
        print("\n=== DRY RUN - No statements will be executed ===\n")
        for statement in SCHEMA_STATEMENTS:
            print(statement.strip() + ";\n")
        return True

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    try:
        print(f"Connecting to Snowflake account: {config.account}")
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            try:
                for statement in SCHEMA_STATEMENTS:
                    cursor.execute(statement)
                    table = statement.split("EXISTS", 1)[1].split("(", 1)[0].strip()
                    print(f"[OK] {table}")
                conn.commit()
            finally:
                cursor.close()

    except SnowflakeConnectionError as e:
        print(f"ERROR connecting to Snowflake: {e}")
        return False

    print("\n=== Schema ready ===")
    return True


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Create ClipStream tables in Snowflake')
    parser.add_argument('--dry-run', action='store_true', help='Print DDL only')
    args = parser.parse_args()

    success = create_schema(dry_run=args.dry_run)
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
