"""
Identity persistence helpers (roles, users, role membership).
"""

from __future__ import annotations

from core import db


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def normalize_role_name(name: str) -> str:
    return (name or "").strip().upper()


async def get_role_by_name(conn: db.Executor, name: str) -> dict | None:
    return await db.fetch_one(
        conn,
        """
        SELECT id, name, normalized_name, created_at
        FROM roles
        WHERE normalized_name = $1
        """,
        normalize_role_name(name),
    )


async def create_role(conn: db.Executor, name: str) -> dict:
    row = await db.fetch_one(
        conn,
        """
        INSERT INTO roles (name, normalized_name)
        VALUES ($1, $2)
        RETURNING id, name, normalized_name, created_at
        """,
        name.strip(),
        normalize_role_name(name),
    )
    if row is None:
        raise RuntimeError("Failed to create role.")
    return row


async def get_user_by_email(conn: db.Executor, email: str) -> dict | None:
    return await db.fetch_one(
        conn,
        """
        SELECT id, email, display_name, password_hash, is_active, created_at, updated_at
        FROM users
        WHERE lower(email) = lower($1)
        """,
        normalize_email(email),
    )


async def create_user(
    conn: db.Executor,
    *,
    email: str,
    display_name: str,
    password_hash: str,
    is_active: bool = True,
) -> dict:
    row = await db.fetch_one(
        conn,
        """
        INSERT INTO users (email, display_name, password_hash, is_active)
        VALUES ($1, $2, $3, $4)
        RETURNING id, email, display_name, is_active, created_at, updated_at
        """,
        normalize_email(email),
        display_name,
        password_hash,
        is_active,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def add_user_to_role(conn: db.Executor, *, user_id: int, role_id: int) -> bool:
    """
    Grant a role. Returns False when the user already had it.
    """
    row = await db.fetch_one(
        conn,
        """
        INSERT INTO user_roles (user_id, role_id)
        VALUES ($1, $2)
        ON CONFLICT (user_id, role_id) DO NOTHING
        RETURNING user_id
        """,
        user_id,
        role_id,
    )
    return row is not None
