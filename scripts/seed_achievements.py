#!/usr/bin/env python3
"""
Idempotent seed script for the achievement catalog

Usage:
    python scripts/seed_achievements.py [--create-table] [--no-update] [--strict]
"""
import argparse
import logging
import sys

from achievement_service.catalog_seeder import CatalogSeeder, create_table_if_not_exists
from achievement_service.logic.catalog import DEFAULT_ACHIEVEMENTS

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the achievement catalog")
    parser.add_argument("--create-table", action="store_true", help="Create the DynamoDB table if missing (local)")
    parser.add_argument("--no-update", action="store_true", help="Skip existing definitions instead of refreshing them")
    parser.add_argument("--strict", action="store_true", help="Fail when an existing definition has different rules")
    args = parser.parse_args()
    
    logger.info("=" * 70)
    logger.info("🌱 SEEDING ACHIEVEMENT CATALOG")
    logger.info("=" * 70)
    
    if args.create_table and create_table_if_not_exists():
        logger.info("📦 Achievements table created")
    
    seeder = CatalogSeeder(strict_mode=args.strict)
    stats = seeder.seed(DEFAULT_ACHIEVEMENTS, update_on_exist=not args.no_update)
    
    logger.info("📊 Summary:")
    logger.info(f"   - Created: {stats['created']}")
    logger.info(f"   - Updated: {stats['updated']}")
    logger.info(f"   - Skipped: {stats['skipped']}")
    logger.info(f"   - Errors: {stats['errors']}")
    
    return 1 if stats['errors'] else 0


if __name__ == "__main__":
    sys.exit(main())
