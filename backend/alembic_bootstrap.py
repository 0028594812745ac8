#!/usr/bin/env python3
"""Alembic bootstrap for databases created with Base.metadata.create_all().

Local and test databases are often created straight from the models by
seed_data.py. When the offboarding tables exist but alembic_version does
not, stamp the initial revision so `alembic upgrade head` applies only
later migrations.
"""

from __future__ import annotations

import os
import subprocess

from sqlalchemy import inspect

from offboardpro.database import engine


INITIAL_REVISION = os.getenv("ALEMBIC_INITIAL_REVISION", "001")
SCHEMA_TABLES = ("organizations", "users", "offboardings", "survey_tokens")


def main() -> int:
    inspector = inspect(engine)
    if inspector.has_table("alembic_version"):
        print("Alembic bootstrap check: schema already versioned")
        return 0

    present = [table for table in SCHEMA_TABLES if inspector.has_table(table)]
    if not present:
        print("Alembic bootstrap check: empty database, run `alembic upgrade head`")
        return 0

    missing = sorted(set(SCHEMA_TABLES) - set(present))
    if missing:
        print(f"Partial schema detected (missing: {', '.join(missing)}); refusing to stamp")
        return 1

    print(f"Unversioned schema detected. Stamping initial revision: {INITIAL_REVISION}")
    subprocess.run(["alembic", "stamp", INITIAL_REVISION], check=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
