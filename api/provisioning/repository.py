"""
Provisioning persistence (raw SQL): migration ledger and reference data.
"""

from __future__ import annotations

from decimal import Decimal

from core import db


async def ensure_migrations_table(conn: db.Executor) -> None:
    await db.execute(
        conn,
        """
        CREATE TABLE IF NOT EXISTS _migrations (
            id SERIAL PRIMARY KEY,
            filename TEXT NOT NULL UNIQUE,
            applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """,
    )


async def list_applied_migrations(conn: db.Executor) -> set[str]:
    rows = await db.fetch_all(conn, "SELECT filename FROM _migrations ORDER BY id")
    return {str(row["filename"]) for row in rows}


async def apply_migration(conn, filename: str, sql: str) -> None:
    """
    Run one migration file and record it, atomically.

    Needs a real connection (not the pool) because of the transaction.
    """
    async with conn.transaction():
        # No bind parameters: asyncpg runs multi-statement scripts this way.
        await conn.execute(sql)
        await db.execute(conn, "INSERT INTO _migrations (filename) VALUES ($1)", filename)


async def has_reference_data(conn: db.Executor) -> bool:
    value = await db.fetch_value(
        conn,
        """
        SELECT EXISTS (SELECT 1 FROM categories)
            OR EXISTS (SELECT 1 FROM brands)
            OR EXISTS (SELECT 1 FROM products)
        """,
    )
    return bool(value)


async def insert_category(conn: db.Executor, *, name: str, description: str = "") -> int:
    value = await db.fetch_value(
        conn,
        """
        INSERT INTO categories (name, description)
        VALUES ($1, $2)
        RETURNING id
        """,
        name,
        description,
    )
    return int(value)


async def insert_brand(conn: db.Executor, *, name: str) -> int:
    value = await db.fetch_value(
        conn,
        """
        INSERT INTO brands (name)
        VALUES ($1)
        RETURNING id
        """,
        name,
    )
    return int(value)


async def insert_product(
    conn: db.Executor,
    *,
    name: str,
    description: str,
    unit: str,
    price: Decimal,
    stock_quantity: int,
    category_id: int,
    brand_id: int | None,
) -> int:
    value = await db.fetch_value(
        conn,
        """
        INSERT INTO products (name, description, unit, price, stock_quantity, category_id, brand_id)
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING id
        """,
        name,
        description,
        unit,
        price,
        stock_quantity,
        category_id,
        brand_id,
    )
    return int(value)
