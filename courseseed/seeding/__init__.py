"""Idempotent seeding of catalog content into the course database."""

from courseseed.seeding.catalog import Catalog, load_catalog
from courseseed.seeding.output import SeedOutput
from courseseed.seeding.reconciler import FindOrCreate, FullRebuild, Reconciler, UpsertByKey
from courseseed.seeding.resolver import ParentResolver
from courseseed.seeding.runner import SeedRunner
from courseseed.seeding.seeders import SeedReport
from courseseed.seeding.store import ContentStore, SqlAlchemyStore, UpsertResult

__all__ = [
    "Catalog",
    "ContentStore",
    "FindOrCreate",
    "FullRebuild",
    "ParentResolver",
    "Reconciler",
    "SeedOutput",
    "SeedReport",
    "SeedRunner",
    "SqlAlchemyStore",
    "UpsertByKey",
    "UpsertResult",
    "load_catalog",
]
