#!/usr/bin/env python3
"""Alembic bootstrap for databases created with ``Base.metadata.create_all``.

If the yard tables already exist but alembic_version is missing, stamp
the baseline revision before normal upgrades.
"""

from __future__ import annotations

import logging
import os
import subprocess

from sqlalchemy import inspect

from yardops.database import engine

logger = logging.getLogger(__name__)

BASELINE_REVISION = os.getenv("ALEMBIC_BASELINE_REVISION", "001")
BUSINESS_TABLES = ("yards", "racks", "storage_requests", "shipments")


def needs_baseline_stamp(inspector) -> bool:
    has_alembic_version = inspector.has_table("alembic_version")
    has_business_schema = any(inspector.has_table(table) for table in BUSINESS_TABLES)
    return not has_alembic_version and has_business_schema


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    if needs_baseline_stamp(inspect(engine)):
        logger.info("Existing schema detected without alembic_version; stamping baseline %s", BASELINE_REVISION)
        subprocess.run(["alembic", "stamp", BASELINE_REVISION], check=True)
    else:
        logger.info("Alembic bootstrap check: no baseline stamp required")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
