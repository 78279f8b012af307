"""
SQL migration runner.

Reads numbered `.sql` files from `provisioning/sql/`, tracks applied files
in the `_migrations` table, and applies pending ones in filename order.
Running against an up-to-date schema is a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from . import repository

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent / "sql"


class MigrationError(RuntimeError):
    pass


@dataclass
class MigrationResult:
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return f"applied={len(self.applied)} skipped={len(self.skipped)}"


def discover_migrations(schema_dir: Path = SCHEMA_DIR) -> list[Path]:
    if not schema_dir.exists():
        return []
    return sorted(schema_dir.glob("*.sql"))


class MigrationRunner:
    def __init__(self, conn, schema_dir: Path | str | None = None) -> None:
        self._conn = conn
        self._schema_dir = Path(schema_dir) if schema_dir else SCHEMA_DIR

    async def pending(self) -> list[str]:
        await repository.ensure_migrations_table(self._conn)
        applied = await repository.list_applied_migrations(self._conn)
        return [f.name for f in discover_migrations(self._schema_dir) if f.name not in applied]

    async def apply_pending(self) -> MigrationResult:
        """
        Apply every pending migration, oldest first.

        Stops at the first failing file so later files never run against a
        schema that is missing an earlier step.
        """
        await repository.ensure_migrations_table(self._conn)
        applied = await repository.list_applied_migrations(self._conn)

        result = MigrationResult()
        for sql_file in discover_migrations(self._schema_dir):
            name = sql_file.name
            if name in applied:
                result.skipped.append(name)
                continue

            sql = sql_file.read_text(encoding="utf-8")
            try:
                await repository.apply_migration(self._conn, name, sql)
            except Exception as exc:
                raise MigrationError(f"Migration {name} failed: {exc}") from exc

            result.applied.append(name)
            logger.info("migration_applied filename=%s", name)

        return result
