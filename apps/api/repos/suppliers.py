import re
from typing import Any, Dict, List, Optional, Tuple

from psycopg import Connection

SUPPLIER_COLUMNS = """
    id, user_id, name, status, performance_rating, total_spend,
    contact_email, contact_phone, contact_address, tax_id, website,
    supplier_type, payment_terms, credit_limit, notes, created_at, updated_at
"""

# Columns an update may touch. Anything else never reaches the SET clause.
UPDATABLE_COLUMNS = frozenset({
    "name", "status", "performance_rating", "total_spend",
    "contact_email", "contact_phone", "contact_address", "tax_id", "website",
    "supplier_type", "payment_terms", "credit_limit", "notes",
})

_WS = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Canonical form used for the (user_id, normalized_name) key and lock."""
    return _WS.sub(" ", name.strip()).casefold()


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _rows(cur) -> List[Dict[str, Any]]:
    columns = [c[0] for c in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]


def _row(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    if not row:
        return None
    columns = [c[0] for c in cur.description]
    return dict(zip(columns, row))


# Suppliers of one account whose name contains `name` (case-insensitive).
# Oldest match first so the caller's pick is deterministic.
def find_matching_suppliers(conn: Connection, user_id: str, name: str) -> List[Dict[str, Any]]:
    with conn.cursor() as cur:
        cur.execute(
            f"""
            SELECT {SUPPLIER_COLUMNS}
            FROM suppliers
            WHERE user_id = %s
              AND name ILIKE %s ESCAPE '\\'
            ORDER BY created_at ASC, id ASC
            """,
            (user_id, f"%{_escape_like(name)}%"),
        )
        return _rows(cur)


# Serializes resolutions of the same (account, normalized name) until the
# surrounding transaction ends.
def lock_supplier_name(conn: Connection, user_id: str, normalized: str) -> None:
    with conn.cursor() as cur:
        cur.execute(
            "SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))",
            (f"{user_id}:{normalized}",),
        )


# Inserts a fresh supplier, or returns the existing one if another writer
# already holds the same (user_id, normalized_name). The bool says whether
# this call created the row.
def insert_supplier(conn: Connection, user_id: str, name: str) -> Tuple[Dict[str, Any], bool]:
    normalized = normalize_name(name)
    with conn.cursor() as cur:
        cur.execute(
            f"""
            INSERT INTO suppliers
              (user_id, name, normalized_name, status, performance_rating, total_spend)
            VALUES
              (%(user_id)s, %(name)s, %(normalized)s, 'active', 0, 0)
            ON CONFLICT (user_id, normalized_name) DO NOTHING
            RETURNING {SUPPLIER_COLUMNS}
            """,
            {"user_id": user_id, "name": name, "normalized": normalized},
        )
        created = _row(cur)
        if created is not None:
            return created, True

        cur.execute(
            f"""
            SELECT {SUPPLIER_COLUMNS}
            FROM suppliers
            WHERE user_id = %s AND normalized_name = %s
            """,
            (user_id, normalized),
        )
        existing = _row(cur)
        if existing is None:
            # Conflicting row vanished between the two statements.
            raise LookupError(f"supplier {name!r} conflicted but could not be fetched")
        return existing, False


def get_supplier(conn: Connection, user_id: str, supplier_id: str) -> Optional[Dict[str, Any]]:
    with conn.cursor() as cur:
        cur.execute(
            f"""
            SELECT {SUPPLIER_COLUMNS}
            FROM suppliers
            WHERE user_id = %s AND id = %s
            """,
            (user_id, supplier_id),
        )
        return _row(cur)


def list_suppliers(conn: Connection, user_id: str, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
    with conn.cursor() as cur:
        cur.execute(
            f"""
            SELECT {SUPPLIER_COLUMNS}
            FROM suppliers
            WHERE user_id = %s
            ORDER BY name ASC, id ASC
            LIMIT %s OFFSET %s
            """,
            (user_id, limit, offset),
        )
        return _rows(cur)


# Partial-name lookup for pickers; alphabetical rather than oldest-first.
def search_suppliers(conn: Connection, user_id: str, term: str, limit: int = 10, offset: int = 0) -> List[Dict[str, Any]]:
    with conn.cursor() as cur:
        cur.execute(
            f"""
            SELECT {SUPPLIER_COLUMNS}
            FROM suppliers
            WHERE user_id = %s
              AND name ILIKE %s ESCAPE '\\'
            ORDER BY name ASC, id ASC
            LIMIT %s OFFSET %s
            """,
            (user_id, f"%{_escape_like(term)}%", limit, offset),
        )
        return _rows(cur)


# Merges `fields` into one supplier and stamps updated_at in a single statement.
# Returns the updated row, or None if no (user_id, id) row matched.
def update_supplier_fields(conn: Connection, user_id: str, supplier_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    unknown = set(fields) - UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"not updatable: {', '.join(sorted(unknown))}")
    if not fields:
        raise ValueError("no fields to update")

    assignments = []
    values: List[Any] = []
    for k, v in fields.items():
        assignments.append(f"{k} = %s")
        values.append(v)
    if "name" in fields:
        assignments.append("normalized_name = %s")
        values.append(normalize_name(fields["name"]))
    assignments.append("updated_at = now()")

    sql_stmt = f"""
        UPDATE suppliers
        SET {', '.join(assignments)}
        WHERE user_id = %s AND id = %s
        RETURNING {SUPPLIER_COLUMNS}
    """
    with conn.cursor() as cur:
        cur.execute(sql_stmt, (*values, user_id, supplier_id))
        return _row(cur)
