"""
Database connection and helper functions
PostgreSQL implementation of the purchase store
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import Json, RealDictCursor
from dotenv import load_dotenv

from config import PURCHASE_TEMPLATE, RESYNC_LIMIT
from models import Contact, PurchaseRecord

# Load environment variables
load_dotenv()

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_PURCHASE_COLUMNS = """
    p.id, p.template, p.user_id, p.purchase_date, p.created, p.purchase_lines,
    s.value AS stripe_session,
    m.value AS mc_synced_at
"""

_PURCHASE_JOINS = """
    FROM purchases p
    LEFT JOIN purchase_meta s ON s.purchase_id = p.id AND s.key = 'stripe_session'
    LEFT JOIN purchase_meta m ON m.purchase_id = p.id AND m.key = 'mc_synced_at'
"""


class Database:
    """PostgreSQL database wrapper"""

    def __init__(self, database_url: Optional[str] = None):
        """
        Initialize database connection

        Args:
            database_url: PostgreSQL connection URL (or use DATABASE_URL env var)
        """
        self.database_url = database_url or os.getenv('DATABASE_URL')

        if not self.database_url:
            raise ValueError("DATABASE_URL not provided")

        self._conn = None

    def connect(self):
        """Establish database connection"""
        if not self._conn or self._conn.closed:
            self._conn = psycopg2.connect(
                self.database_url,
                cursor_factory=RealDictCursor
            )
        return self._conn

    def close(self):
        """Close database connection"""
        if self._conn and not self._conn.closed:
            self._conn.close()

    @contextmanager
    def get_cursor(self):
        """Context manager for database cursor"""
        conn = self.connect()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def init_schema(self):
        """Create tables if they do not exist yet"""
        with self.get_cursor() as cursor:
            cursor.execute(SCHEMA_PATH.read_text())

    # ==========================
    # ROW MAPPING
    # ==========================

    @staticmethod
    def row_to_purchase(row: Dict[str, Any]) -> PurchaseRecord:
        """Map a purchases row (joined with its meta) to a PurchaseRecord"""
        synced_at = row.get('mc_synced_at')
        return PurchaseRecord(
            id=row['id'],
            template=row.get('template') or PURCHASE_TEMPLATE,
            owner_id=row.get('user_id'),
            purchase_date=row.get('purchase_date'),
            created=row.get('created') or 0,
            purchase_lines=row.get('purchase_lines') or '',
            stripe_session=row.get('stripe_session'),
            mc_synced_at=int(synced_at) if synced_at else None,
        )

    @staticmethod
    def row_to_contact(row: Dict[str, Any]) -> Contact:
        return Contact(
            id=row['id'],
            email=row.get('email') or '',
            title=row.get('title') or '',
            kind=row.get('template') or '',
        )

    # ==========================
    # PURCHASE OPERATIONS
    # ==========================

    def get_purchase(self, record_id: int) -> Optional[PurchaseRecord]:
        """Get a purchase item by ID"""
        with self.get_cursor() as cursor:
            cursor.execute(
                f"SELECT {_PURCHASE_COLUMNS} {_PURCHASE_JOINS} WHERE p.id = %s",
                (record_id,)
            )
            row = cursor.fetchone()
            return self.row_to_purchase(row) if row else None

    def find_purchases(
        self,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        owner_id: Optional[int] = None,
        limit: int = RESYNC_LIMIT,
    ) -> List[PurchaseRecord]:
        """
        Find purchase items by purchase date and owner

        Args:
            date_from: Inclusive lower bound (epoch seconds)
            date_to: Inclusive upper bound (epoch seconds)
            owner_id: Only purchases of this user
            limit: Maximum number of records

        Returns:
            Purchase records, oldest first
        """
        conditions = ["p.template = %s"]
        params: List[Any] = [PURCHASE_TEMPLATE]

        if date_from:
            conditions.append("COALESCE(p.purchase_date, p.created) >= %s")
            params.append(date_from)
        if date_to:
            conditions.append("COALESCE(p.purchase_date, p.created) <= %s")
            params.append(date_to)
        if owner_id is not None:
            conditions.append("p.user_id = %s")
            params.append(owner_id)

        params.append(limit)
        with self.get_cursor() as cursor:
            cursor.execute(f"""
                SELECT {_PURCHASE_COLUMNS} {_PURCHASE_JOINS}
                WHERE {' AND '.join(conditions)}
                ORDER BY COALESCE(p.purchase_date, p.created), p.id
                LIMIT %s
            """, tuple(params))
            return [self.row_to_purchase(row) for row in cursor.fetchall()]

    def mark_synced(self, record_id: int, synced_at: int) -> None:
        """Write the mc_synced_at meta value without touching the purchase row"""
        with self.get_cursor() as cursor:
            cursor.execute("""
                INSERT INTO purchase_meta (purchase_id, key, value, updated_at)
                VALUES (%s, 'mc_synced_at', %s, CURRENT_TIMESTAMP)
                ON CONFLICT (purchase_id, key) DO UPDATE SET
                    value = EXCLUDED.value,
                    updated_at = EXCLUDED.updated_at
            """, (record_id, Json(synced_at)))

    # ==========================
    # USER OPERATIONS
    # ==========================

    def get_contact(self, contact_id: int) -> Optional[Contact]:
        """Get user by ID"""
        with self.get_cursor() as cursor:
            cursor.execute("SELECT * FROM users WHERE id = %s", (contact_id,))
            row = cursor.fetchone()
            return self.row_to_contact(row) if row else None

    def get_owner(self, record: PurchaseRecord) -> Optional[Contact]:
        """User owning a purchase item"""
        if record.owner_id is None:
            return None
        return self.get_contact(record.owner_id)

    def get_contact_by_email(self, email: str) -> Optional[Contact]:
        """Get user by email (case-insensitive)"""
        with self.get_cursor() as cursor:
            cursor.execute(
                "SELECT * FROM users WHERE LOWER(email) = LOWER(%s) ORDER BY id LIMIT 1",
                (email,)
            )
            row = cursor.fetchone()
            return self.row_to_contact(row) if row else None

    # ==========================
    # MODULE CONFIG
    # ==========================

    def load_config(self, module_name: str) -> Dict[str, Any]:
        """Get saved settings of a module ({} if never saved)"""
        with self.get_cursor() as cursor:
            cursor.execute("SELECT data FROM module_config WHERE module_name = %s", (module_name,))
            row = cursor.fetchone()
            return dict(row['data']) if row else {}

    def save_config(self, module_name: str, data: Dict[str, Any]) -> None:
        """Replace saved settings of a module"""
        with self.get_cursor() as cursor:
            cursor.execute("""
                INSERT INTO module_config (module_name, data, updated_at)
                VALUES (%s, %s, CURRENT_TIMESTAMP)
                ON CONFLICT (module_name) DO UPDATE SET
                    data = EXCLUDED.data,
                    updated_at = EXCLUDED.updated_at
            """, (module_name, Json(data)))


# Singleton instance
_db = None


def get_db() -> Database:
    """Get database singleton instance"""
    global _db
    if _db is None:
        _db = Database()
    return _db
