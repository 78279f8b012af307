"""
Baseline data seeding: roles, the admin account, catalog reference data.

Every function is safe to run on every start; existing rows are detected
and left alone.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from auth import repository as auth_repository
from auth import security
from core.config import Settings

from . import repository

logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"
ROLES = (ADMIN_ROLE, "Farmer", "Expert", "Supplier")

REFERENCE_DATA_PATH = Path(__file__).resolve().parent / "data" / "reference_data.json"


class SeedError(RuntimeError):
    pass


async def seed_roles(conn, roles: tuple[str, ...] = ROLES) -> str:
    created: list[str] = []
    async with conn.transaction():
        for name in roles:
            if await auth_repository.get_role_by_name(conn, name) is not None:
                continue
            await auth_repository.create_role(conn, name)
            created.append(name)

    if created:
        logger.info("roles_seeded created=%s", ",".join(created))
    return f"created={len(created)} existing={len(roles) - len(created)}"


async def seed_admin_user(conn, settings: Settings) -> str:
    email = auth_repository.normalize_email(settings.admin_email)
    if not email:
        raise SeedError("Admin email is empty.")

    async with conn.transaction():
        role = await auth_repository.get_role_by_name(conn, ADMIN_ROLE)
        if role is None:
            raise SeedError(f"Role '{ADMIN_ROLE}' does not exist; cannot seed admin user.")

        user = await auth_repository.get_user_by_email(conn, email)
        created = user is None
        if created:
            user = await auth_repository.create_user(
                conn,
                email=email,
                display_name=settings.admin_display_name,
                password_hash=security.hash_password(settings.admin_password),
            )
        elif not security.verify_password(settings.admin_password, user.get("password_hash") or ""):
            # Existing passwords are never reset from configuration.
            logger.warning("admin_password_mismatch email=%s", email)

        granted = await auth_repository.add_user_to_role(
            conn,
            user_id=int(user["id"]),
            role_id=int(role["id"]),
        )

    if created:
        logger.info("admin_user_seeded email=%s", email)
    return f"created={created} role_granted={granted}"


def load_reference_data(path: Path = REFERENCE_DATA_PATH) -> dict[str, list[dict[str, Any]]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SeedError(f"Cannot read reference data from {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise SeedError("Reference data must be a JSON object.")
    return {key: list(data.get(key) or []) for key in ("categories", "brands", "products")}


def _price(raw: Any) -> Decimal:
    try:
        return Decimal(str(raw))
    except InvalidOperation as exc:
        raise SeedError(f"Invalid product price: {raw!r}") from exc


async def seed_reference_data(conn, data: dict[str, list[dict[str, Any]]] | None = None) -> str:
    """
    Insert catalog reference rows when the catalog is completely empty.

    The presence check is for the catalog as a whole: if any category,
    brand or product exists, nothing is inserted.
    """
    if await repository.has_reference_data(conn):
        return "skipped=already_present"

    data = data if data is not None else load_reference_data()

    async with conn.transaction():
        category_ids: dict[str, int] = {}
        for item in data["categories"]:
            name = str(item["name"]).strip()
            category_ids[name] = await repository.insert_category(
                conn,
                name=name,
                description=str(item.get("description") or ""),
            )

        brand_ids: dict[str, int] = {}
        for item in data["brands"]:
            name = str(item["name"]).strip()
            brand_ids[name] = await repository.insert_brand(conn, name=name)

        for item in data["products"]:
            category = str(item.get("category") or "").strip()
            if category not in category_ids:
                raise SeedError(f"Product '{item.get('name')}' references unknown category '{category}'.")

            brand = item.get("brand")
            if brand is not None and brand not in brand_ids:
                raise SeedError(f"Product '{item.get('name')}' references unknown brand '{brand}'.")

            await repository.insert_product(
                conn,
                name=str(item["name"]).strip(),
                description=str(item.get("description") or ""),
                unit=str(item.get("unit") or "kg"),
                price=_price(item.get("price")),
                stock_quantity=int(item.get("stock_quantity") or 0),
                category_id=category_ids[category],
                brand_id=brand_ids[brand] if brand is not None else None,
            )

    counts = {key: len(rows) for key, rows in data.items()}
    logger.info(
        "reference_data_seeded categories=%s brands=%s products=%s",
        counts["categories"],
        counts["brands"],
        counts["products"],
    )
    return "categories={categories} brands={brands} products={products}".format(**counts)
