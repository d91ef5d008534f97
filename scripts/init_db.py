#!/usr/bin/env python3
"""
Database initialization script
Creates all tables and optionally seeds a sample match with odds
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Load .env file
from dotenv import load_dotenv
load_dotenv()

from datetime import date, time
from decimal import Decimal
import logging

from sqlalchemy import text, inspect

from matchodds.core.errors import ConflictError
from matchodds.models import Base, engine, SessionLocal, Sport
from matchodds.schemas import MatchOddsRequest, MatchRequest
from matchodds.services.match_service import MatchService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_database(drop_existing: bool = False, assume_yes: bool = False):
    """
    Initialize database tables

    Args:
        drop_existing: If True, drops all tables first (DANGER: data loss!)
        assume_yes: Skip the interactive confirmation for --drop
    """
    logger.info("Initializing Match Odds database...")

    if drop_existing:
        logger.warning("Dropping all existing tables!")
        if not assume_yes:
            response = input("Are you sure? This will delete all data. Type 'yes' to confirm: ")
            if response.lower() != 'yes':
                logger.info("Aborted.")
                return False

        Base.metadata.drop_all(bind=engine)
        logger.info("Existing tables dropped")

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")

    inspector = inspect(engine)
    tables = inspector.get_table_names()
    logger.info("Tables: %s", ", ".join(tables))

    return True


def seed_test_data():
    """Add the OSFP-PAO sample match for development"""
    logger.info("Seeding test data...")

    db = SessionLocal()

    try:
        created = MatchService(db).create(
            MatchRequest(
                description="OSFP-PAO",
                match_date=date(2021, 3, 31),
                match_time=time(12, 0),
                team_a="OSFP",
                team_b="PAO",
                sport=Sport.FOOTBALL,
                odds=[
                    MatchOddsRequest(specifier="1", odd=Decimal("1.50")),
                    MatchOddsRequest(specifier="X", odd=Decimal("2.80")),
                    MatchOddsRequest(specifier="2", odd=Decimal("4.20")),
                ],
            )
        )
        logger.info("Seeded match %d with %d odds", created.id, len(created.odds))

    except ConflictError as e:
        logger.error("Error seeding data: %s", e)

    finally:
        db.close()


def check_connection():
    """Test database connection"""
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Initialize Match Odds database")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables (DANGER!)")
    parser.add_argument("--yes", action="store_true", help="Do not prompt before dropping")
    parser.add_argument("--seed", action="store_true", help="Seed a sample match")
    parser.add_argument("--check", action="store_true", help="Only check connection")

    args = parser.parse_args()

    if args.check:
        sys.exit(0 if check_connection() else 1)

    if not check_connection():
        logger.error("Cannot initialize database - connection failed")
        sys.exit(1)

    if init_database(drop_existing=args.drop, assume_yes=args.yes) and args.seed:
        seed_test_data()

    logger.info("Database initialization complete!")
