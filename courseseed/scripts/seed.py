"""Seed demo users, languages, tags, courses, lessons, exercises and quizzes from a catalog.

Usage:
    courseseed                                  # everything under CATALOG_DIR
    courseseed --catalog ./catalog --course python-desde-cero
    courseseed --only quizzes --only exercises
    courseseed --reset                          # drop and recreate all tables first
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from courseseed.core.config import settings
from courseseed.core.exceptions import CatalogError
from courseseed.core.logging import configure_logging, get_logger, level_from_name
from courseseed.db.init_db import create_database, drop_database
from courseseed.db.session import build_engine, build_sessionmaker
from courseseed.seeding.catalog import load_catalog
from courseseed.seeding.output import SeedOutput
from courseseed.seeding.runner import STAGES, SeedRunner

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="courseseed", description=__doc__.splitlines()[0])
    parser.add_argument("--catalog", type=Path, default=None, help="catalog directory (default: CATALOG_DIR)")
    parser.add_argument("--database-url", default=None, help="overrides DATABASE_URL")
    parser.add_argument(
        "--course",
        action="append",
        dest="courses",
        metavar="SLUG",
        help="only seed lessons/exercises/quizzes of this course (repeatable)",
    )
    parser.add_argument(
        "--only",
        action="append",
        dest="stages",
        choices=STAGES,
        help="only run these stages (repeatable)",
    )
    parser.add_argument("--create-tables", action="store_true", help="create missing tables before seeding")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables before seeding")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level_from_name(settings.LOG_LEVEL), json_logs=settings.LOG_JSON)

    output = SeedOutput()
    catalog_dir = args.catalog or Path(settings.CATALOG_DIR)
    try:
        catalog = load_catalog(catalog_dir)
    except CatalogError as exc:
        logger.error("catalog rejected", error=str(exc))
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    engine = build_engine(args.database_url)
    if args.reset:
        drop_database(engine)
        create_database(engine)
    elif args.create_tables:
        create_database(engine)

    SessionLocal = build_sessionmaker(engine)
    db = SessionLocal()
    try:
        reports = SeedRunner(db, catalog, output, courses=args.courses, stages=args.stages).run()
    finally:
        db.close()
        engine.dispose()

    aborted = [report.seeder for report in reports if report.aborted]
    output.info(f"Seed completed: {len(reports)} seeders run, {len(aborted)} aborted.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
