from psycopg import Connection

DDL = """
-- Enable pgcrypto for UUID generation
CREATE EXTENSION IF NOT EXISTS pgcrypto;

-- Suppliers (one row per vendor known to an account)
CREATE TABLE IF NOT EXISTS suppliers (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  user_id TEXT NOT NULL,
  name VARCHAR(255) NOT NULL,
  normalized_name VARCHAR(255) NOT NULL,
  contact_email VARCHAR(255),
  contact_phone VARCHAR(50),
  contact_address TEXT,
  tax_id VARCHAR(100),
  website VARCHAR(255),
  supplier_type VARCHAR(50)
    CHECK (supplier_type IN ('manufacturer', 'distributor', 'service_provider', 'consultant', 'other')),
  performance_rating NUMERIC(3,2) NOT NULL DEFAULT 0
    CHECK (performance_rating BETWEEN 0 AND 5),
  total_spend NUMERIC(15,2) NOT NULL DEFAULT 0 CHECK (total_spend >= 0),
  payment_terms VARCHAR(100),
  credit_limit NUMERIC(15,2),
  status VARCHAR(50) NOT NULL DEFAULT 'active'
    CHECK (status IN ('active', 'inactive', 'suspended')),
  notes TEXT,
  created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
  updated_at TIMESTAMPTZ
);

-- One supplier per normalized name per account; resolution relies on
-- INSERT ... ON CONFLICT against this index.
CREATE UNIQUE INDEX IF NOT EXISTS suppliers_user_normalized_name_uidx
  ON suppliers (user_id, normalized_name);

CREATE INDEX IF NOT EXISTS suppliers_user_created_idx
  ON suppliers (user_id, created_at);
"""


def apply_schema(conn: Connection) -> None:
    with conn.cursor() as cur:
        cur.execute(DDL)
    conn.commit()
