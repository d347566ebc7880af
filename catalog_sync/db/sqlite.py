"""
SQLite database implementation.
Staging store for products plus a small key/value settings table.
"""

import aiosqlite
import json
from datetime import datetime
from typing import Any, Iterable, List, Optional
import os

from .models import (
    Product, ProductImage, ProductVariant, CategoryValue, ProductStatus, utcnow
)


# Columns holding JSON-encoded lists
_JSON_FIELDS = ("images", "category_values", "variants", "tags")
_DATETIME_FIELDS = ("last_ingested", "last_synced", "created_at", "updated_at")

_PRODUCT_COLUMNS = (
    "supplier_product_id", "mfr_id", "mfr_name", "model_number", "title",
    "description_html", "spec_sheet_url", "list_price", "net_price", "net_cost",
    "final_price", "images", "category_values", "variants", "tags", "product_type",
    "status", "sync_error", "last_ingested", "last_synced", "shopify_id",
    "shopify_handle", "created_at", "updated_at",
)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None)
    return parsed


def _encode(key: str, value: Any) -> Any:
    """Convert a Product field value to its column value."""
    if key in _JSON_FIELDS:
        return json.dumps([
            item.model_dump(exclude_none=True) if hasattr(item, "model_dump") else item
            for item in (value or [])
        ])
    if key in _DATETIME_FIELDS:
        return value.isoformat() if isinstance(value, datetime) else value
    if key == "status":
        return value.value if isinstance(value, ProductStatus) else value
    return value


class SQLiteDatabase:
    """SQLite database for all operations."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        return self._connection

    async def initialize(self) -> None:
        """Create database tables."""
        conn = await self._get_connection()

        await conn.executescript("""
            CREATE TABLE IF NOT EXISTS products (
                supplier_product_id TEXT PRIMARY KEY,
                mfr_id TEXT NOT NULL,
                mfr_name TEXT NOT NULL,
                model_number TEXT NOT NULL,
                title TEXT NOT NULL,
                description_html TEXT NOT NULL DEFAULT '',
                spec_sheet_url TEXT,
                list_price REAL NOT NULL DEFAULT 0,
                net_price REAL NOT NULL DEFAULT 0,
                net_cost REAL NOT NULL DEFAULT 0,
                final_price REAL NOT NULL DEFAULT 0,
                images TEXT NOT NULL DEFAULT '[]',
                category_values TEXT NOT NULL DEFAULT '[]',
                variants TEXT NOT NULL DEFAULT '[]',
                tags TEXT NOT NULL DEFAULT '[]',
                product_type TEXT NOT NULL DEFAULT 'General',
                status TEXT NOT NULL DEFAULT 'staged',
                sync_error TEXT,
                last_ingested TEXT NOT NULL,
                last_synced TEXT,
                shopify_id TEXT,
                shopify_handle TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_products_model_number ON products(model_number);
            CREATE INDEX IF NOT EXISTS idx_products_mfr_status ON products(mfr_id, status);
        """)
        await conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    # ===== Helper Methods =====

    def _row_to_product(self, row: aiosqlite.Row) -> Product:
        """Convert a database row to a Product model."""
        return Product(
            supplier_product_id=row["supplier_product_id"],
            mfr_id=row["mfr_id"],
            mfr_name=row["mfr_name"],
            model_number=row["model_number"],
            title=row["title"],
            description_html=row["description_html"],
            spec_sheet_url=row["spec_sheet_url"],
            list_price=row["list_price"],
            net_price=row["net_price"],
            net_cost=row["net_cost"],
            final_price=row["final_price"],
            images=[ProductImage(**i) for i in json.loads(row["images"])],
            category_values=[CategoryValue(**c) for c in json.loads(row["category_values"])],
            variants=[ProductVariant(**v) for v in json.loads(row["variants"])],
            tags=json.loads(row["tags"]),
            product_type=row["product_type"],
            status=ProductStatus(row["status"]),
            sync_error=row["sync_error"],
            last_ingested=_parse_datetime(row["last_ingested"]),
            last_synced=_parse_datetime(row["last_synced"]),
            shopify_id=row["shopify_id"],
            shopify_handle=row["shopify_handle"],
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
        )

    # ===== Product Operations =====

    async def get_product(self, supplier_product_id: str) -> Optional[Product]:
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT * FROM products WHERE supplier_product_id = ?", (supplier_product_id,)
        )
        row = await cursor.fetchone()
        return self._row_to_product(row) if row else None

    async def get_products_by_model(self, model_number: str) -> List[Product]:
        """Model numbers are not unique across manufacturers, so this returns a list."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT * FROM products WHERE model_number = ? COLLATE NOCASE ORDER BY mfr_name",
            (model_number,)
        )
        rows = await cursor.fetchall()
        return [self._row_to_product(row) for row in rows]

    async def list_products(
        self,
        statuses: Optional[Iterable[ProductStatus]] = None,
        mfr_ids: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Product]:
        conn = await self._get_connection()

        query = "SELECT * FROM products WHERE 1=1"
        params: List[Any] = []

        if statuses is not None:
            values = [s.value for s in statuses]
            if not values:
                return []
            query += f" AND status IN ({', '.join('?' for _ in values)})"
            params.extend(values)

        if mfr_ids is not None:
            ids = list(mfr_ids)
            if not ids:
                return []
            query += f" AND mfr_id IN ({', '.join('?' for _ in ids)})"
            params.extend(ids)

        query += " ORDER BY mfr_name, model_number"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        return [self._row_to_product(row) for row in rows]

    async def count_products(self) -> int:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT COUNT(*) FROM products")
        row = await cursor.fetchone()
        return row[0]

    async def upsert_product(self, product: Product) -> Product:
        """Insert a product or overwrite the stored row with the same supplier id."""
        product.updated_at = utcnow()
        values = [_encode(col, getattr(product, col)) for col in _PRODUCT_COLUMNS]

        updates = ", ".join(
            f"{col} = excluded.{col}"
            for col in _PRODUCT_COLUMNS
            if col not in ("supplier_product_id", "created_at")
        )

        conn = await self._get_connection()
        await conn.execute(
            f"""
            INSERT INTO products ({', '.join(_PRODUCT_COLUMNS)})
            VALUES ({', '.join('?' for _ in _PRODUCT_COLUMNS)})
            ON CONFLICT(supplier_product_id) DO UPDATE SET {updates}
            """,
            values
        )
        await conn.commit()
        return product

    async def update_product(self, supplier_product_id: str, **kwargs) -> Optional[Product]:
        if not kwargs:
            return await self.get_product(supplier_product_id)

        updates = []
        values = []

        for key, value in kwargs.items():
            if key not in _PRODUCT_COLUMNS or key in ("supplier_product_id", "created_at"):
                raise ValueError(f"Unknown product field: {key}")
            updates.append(f"{key} = ?")
            values.append(_encode(key, value))

        updates.append("updated_at = ?")
        values.append(utcnow().isoformat())
        values.append(supplier_product_id)

        conn = await self._get_connection()
        await conn.execute(
            f"UPDATE products SET {', '.join(updates)} WHERE supplier_product_id = ?", values
        )
        await conn.commit()

        return await self.get_product(supplier_product_id)

    # ===== Settings Operations =====

    async def get_setting(self, key: str, default: Any = None) -> Any:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return json.loads(row["value"]) if row else default

    async def set_setting(self, key: str, value: Any) -> None:
        conn = await self._get_connection()
        await conn.execute(
            """
            INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, json.dumps(value), utcnow().isoformat())
        )
        await conn.commit()
