"""
Database Connection and Management

SQLite datastore for the catalog, keyword index, offers and match feedback.
Methods never commit on their own; callers group writes with transaction().
"""

import json
import sqlite3
import logging
import uuid
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone

from services.config import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_JSON_COLUMNS = ('specifications', 'images', 'other_variants')
_BOOL_COLUMNS = ('is_active', 'is_featured', 'track_inventory', 'user_choice')


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return uuid.uuid4().hex


def row_to_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    """Convert a row to a plain dict, decoding JSON and boolean columns."""
    if row is None:
        return None
    data = dict(row)
    for column in _JSON_COLUMNS:
        if isinstance(data.get(column), str):
            data[column] = json.loads(data[column])
    for column in _BOOL_COLUMNS:
        if data.get(column) is not None:
            data[column] = bool(data[column])
    return data


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


class Database:
    """
    SQLite database wrapper with transaction and catalog utilities.
    """

    def __init__(self, db_path: Optional[str] = None, timeout: float = 30.0):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout
        self._connection: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,  # FastAPI serves requests from a threadpool
                timeout=self.timeout
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._connection.execute("PRAGMA journal_mode = WAL")
        return self._connection

    def close(self):
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None

    @contextmanager
    def transaction(self):
        """Context manager for transactions."""
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a query."""
        return self.connect().execute(query, params)

    def executemany(self, query: str, params_list: List[tuple]) -> sqlite3.Cursor:
        """Execute a query with multiple parameter sets."""
        return self.connect().executemany(query, params_list)

    def fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        """Execute query and fetch one result."""
        return self.execute(query, params).fetchone()

    def fetchall(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Execute query and fetch all results."""
        return self.execute(query, params).fetchall()

    def init_schema(self):
        """Initialize database schema from SQL file."""
        if not SCHEMA_PATH.exists():
            raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

        with open(SCHEMA_PATH, 'r', encoding='utf-8') as f:
            schema_sql = f.read()

        conn = self.connect()
        conn.executescript(schema_sql)
        conn.commit()
        logger.info(f"Database schema initialized: {self.db_path}")

    def get_table_counts(self) -> Dict[str, int]:
        """Get row counts for the catalog tables."""
        tables = ['product_catalog', 'product_keywords', 'product_offers',
                  'product_match_feedback', 'categories', 'vendors', 'users']
        counts = {}
        for table in tables:
            try:
                result = self.fetchone(f"SELECT COUNT(*) as cnt FROM {table}")
                counts[table] = result['cnt'] if result else 0
            except sqlite3.OperationalError:
                counts[table] = 0
        return counts

    # ========================================
    # Identity & Reference Data
    # ========================================

    def get_user_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        return row_to_dict(self.fetchone(
            "SELECT id, email, role FROM users WHERE api_token = ?", (token,)
        ))

    def get_vendor_for_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return row_to_dict(self.fetchone(
            "SELECT id, business_name, status FROM vendors WHERE user_id = ? "
            "ORDER BY created_at LIMIT 1",
            (user_id,)
        ))

    def insert_user(self, email: str, role: str, api_token: Optional[str] = None,
                    user_id: Optional[str] = None) -> str:
        user_id = user_id or new_id()
        self.execute(
            "INSERT INTO users (id, email, role, api_token) VALUES (?, ?, ?, ?)",
            (user_id, email, role, api_token)
        )
        return user_id

    def insert_vendor(self, user_id: str, business_name: str, status: str = 'approved',
                      vendor_id: Optional[str] = None) -> str:
        vendor_id = vendor_id or new_id()
        self.execute(
            "INSERT INTO vendors (id, user_id, business_name, status) VALUES (?, ?, ?, ?)",
            (vendor_id, user_id, business_name, status)
        )
        return vendor_id

    def insert_category(self, name: str, slug: str, category_id: Optional[str] = None) -> str:
        category_id = category_id or new_id()
        self.execute(
            "INSERT INTO categories (id, name, slug) VALUES (?, ?, ?)",
            (category_id, name, slug)
        )
        return category_id

    def category_exists(self, category_id: str) -> bool:
        return self.fetchone(
            "SELECT 1 FROM categories WHERE id = ?", (category_id,)
        ) is not None

    def get_known_brands(self) -> List[str]:
        """Brands maintained in the brands reference table."""
        return [row['name'] for row in self.fetchall("SELECT name FROM brands ORDER BY name")]

    def add_brands(self, brands: Iterable[str]):
        self.executemany(
            "INSERT OR IGNORE INTO brands (name) VALUES (?)",
            [(brand,) for brand in brands]
        )

    # ========================================
    # Catalog Operations
    # ========================================

    def insert_catalog_entry(self, catalog_data: Dict[str, Any]) -> str:
        """Insert a catalog entry, return its ID."""
        now = utcnow()
        catalog_id = catalog_data.get('id') or new_id()
        self.execute("""
            INSERT INTO product_catalog (id, name, brand, model, category_id,
                base_description, specifications, images, gtin, mpn, slug,
                created_by, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            catalog_id,
            catalog_data['name'],
            catalog_data.get('brand'),
            catalog_data.get('model'),
            catalog_data['category_id'],
            catalog_data.get('base_description') or '',
            json.dumps(catalog_data.get('specifications') or {}),
            json.dumps(catalog_data.get('images') or []),
            catalog_data.get('gtin'),
            catalog_data.get('mpn'),
            catalog_data['slug'],
            catalog_data.get('created_by'),
            1 if catalog_data.get('is_active', True) else 0,
            now, now
        ))
        return catalog_id

    def get_catalog_entry(self, catalog_id: str) -> Optional[Dict[str, Any]]:
        return row_to_dict(self.fetchone("""
            SELECT c.*, cat.name AS category_name
            FROM product_catalog c
            LEFT JOIN categories cat ON cat.id = c.category_id
            WHERE c.id = ?
        """, (catalog_id,)))

    def find_catalog_by_name(self, name: str, category_id: str) -> Optional[Dict[str, Any]]:
        return row_to_dict(self.fetchone(
            "SELECT id, name FROM product_catalog WHERE name = ? AND category_id = ?",
            (name, category_id)
        ))

    def insert_keywords(self, rows: List[tuple]):
        """Batch insert (catalog_id, keyword, weight) rows."""
        self.executemany(
            "INSERT INTO product_keywords (catalog_id, keyword, weight) VALUES (?, ?, ?)",
            rows
        )

    def get_keywords(self, catalog_id: str) -> List[Dict[str, Any]]:
        return [dict(row) for row in self.fetchall(
            "SELECT catalog_id, keyword, weight FROM product_keywords WHERE catalog_id = ? ORDER BY id",
            (catalog_id,)
        )]

    def find_candidates(self, tokens: Sequence[str],
                        category_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Active catalog entries sharing at least one keyword with tokens."""
        if not tokens:
            return []

        query = f"""
            SELECT c.id, c.name, c.brand, c.model, c.category_id, c.created_at,
                   cat.name AS category_name
            FROM product_catalog c
            LEFT JOIN categories cat ON cat.id = c.category_id
            WHERE c.is_active = 1
            AND c.id IN (
                SELECT DISTINCT catalog_id FROM product_keywords
                WHERE keyword IN ({_placeholders(tokens)})
            )
        """
        params: List[Any] = list(tokens)
        if category_id:
            query += " AND c.category_id = ?"
            params.append(category_id)

        return [dict(row) for row in self.fetchall(query, tuple(params))]

    def get_keyword_weights(self, catalog_ids: Sequence[str]) -> Dict[str, Dict[str, int]]:
        """Distinct keywords per catalog entry with their strongest weight."""
        if not catalog_ids:
            return {}

        rows = self.fetchall(f"""
            SELECT catalog_id, keyword, MAX(weight) AS weight
            FROM product_keywords
            WHERE catalog_id IN ({_placeholders(catalog_ids)})
            GROUP BY catalog_id, keyword
        """, tuple(catalog_ids))

        weights: Dict[str, Dict[str, int]] = {}
        for row in rows:
            weights.setdefault(row['catalog_id'], {})[row['keyword']] = row['weight']
        return weights

    # ========================================
    # Offer Operations
    # ========================================

    def insert_offer(self, offer_data: Dict[str, Any]) -> str:
        """Insert a product offer, return its ID."""
        now = utcnow()
        offer_id = offer_data.get('id') or new_id()
        self.execute("""
            INSERT INTO product_offers (id, catalog_id, vendor_id, price, compare_price,
                condition, color, size, storage, other_variants, sku,
                inventory_quantity, track_inventory, title, description, images,
                is_active, is_featured, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            offer_id,
            offer_data['catalog_id'],
            offer_data.get('vendor_id'),
            offer_data['price'],
            offer_data.get('compare_price'),
            offer_data.get('condition') or 'new',
            offer_data.get('color'),
            offer_data.get('size'),
            offer_data.get('storage'),
            json.dumps(offer_data.get('other_variants') or {}),
            offer_data.get('sku'),
            offer_data.get('inventory_quantity') or 0,
            1 if offer_data.get('track_inventory', True) else 0,
            offer_data.get('title'),
            offer_data.get('description') or '',
            json.dumps(offer_data.get('images') or []),
            1 if offer_data.get('is_active', True) else 0,
            1 if offer_data.get('is_featured') else 0,
            now, now
        ))
        return offer_id

    def get_offer_with_catalog(self, offer_id: str) -> Optional[Dict[str, Any]]:
        """Offer row with its owning catalog entry nested under 'product_catalog'."""
        offer = row_to_dict(self.fetchone(
            "SELECT * FROM product_offers WHERE id = ?", (offer_id,)
        ))
        if offer is None:
            return None

        catalog = self.fetchone(
            "SELECT id, name, brand, category_id FROM product_catalog WHERE id = ?",
            (offer['catalog_id'],)
        )
        offer['product_catalog'] = dict(catalog) if catalog else None
        return offer

    def get_best_offer(self, catalog_id: str) -> Optional[Dict[str, Any]]:
        """Cheapest active offer for a catalog entry, with the vendor's name."""
        row = self.fetchone("""
            SELECT o.id AS offer_id, o.price AS best_price, v.business_name AS vendor_name
            FROM product_offers o
            LEFT JOIN vendors v ON v.id = o.vendor_id
            WHERE o.catalog_id = ? AND o.is_active = 1
            ORDER BY o.price ASC, o.created_at ASC
            LIMIT 1
        """, (catalog_id,))
        return dict(row) if row else None

    def count_active_offers(self, catalog_id: str) -> int:
        result = self.fetchone(
            "SELECT COUNT(*) AS cnt FROM product_offers WHERE catalog_id = ? AND is_active = 1",
            (catalog_id,)
        )
        return result['cnt'] if result else 0

    def get_offers(self, catalog_id: str) -> List[Dict[str, Any]]:
        return [row_to_dict(row) for row in self.fetchall("""
            SELECT o.*, v.business_name AS vendor_name
            FROM product_offers o
            LEFT JOIN vendors v ON v.id = o.vendor_id
            WHERE o.catalog_id = ?
            ORDER BY o.created_at
        """, (catalog_id,))]

    # ========================================
    # Feedback Operations
    # ========================================

    def insert_feedback(self, feedback: Dict[str, Any]) -> int:
        cursor = self.execute("""
            INSERT INTO product_match_feedback (input_text, suggested_catalog_id,
                user_choice, actual_catalog_id, confidence_score, user_id,
                category_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            feedback.get('input_text'),
            feedback.get('suggested_catalog_id'),
            None if feedback.get('user_choice') is None else int(bool(feedback['user_choice'])),
            feedback.get('actual_catalog_id'),
            feedback.get('confidence_score'),
            feedback.get('user_id'),
            feedback.get('category_id'),
            utcnow()
        ))
        return cursor.lastrowid

    def get_feedback(self, limit: int = 100) -> List[Dict[str, Any]]:
        return [row_to_dict(row) for row in self.fetchall(
            "SELECT * FROM product_match_feedback ORDER BY id DESC LIMIT ?", (limit,)
        )]

    def get_feedback_summary(self) -> Dict[str, Any]:
        row = self.fetchone("""
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN user_choice = 1 THEN 1 ELSE 0 END) AS accepted,
                SUM(CASE WHEN user_choice = 0 THEN 1 ELSE 0 END) AS rejected,
                AVG(confidence_score) AS avg_confidence,
                AVG(CASE WHEN user_choice = 1 THEN confidence_score END) AS avg_accepted_confidence,
                AVG(CASE WHEN user_choice = 0 THEN confidence_score END) AS avg_rejected_confidence
            FROM product_match_feedback
        """)
        return dict(row)


# Singleton instance
_db_instance: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get database singleton instance."""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database(db_path)
    return _db_instance
