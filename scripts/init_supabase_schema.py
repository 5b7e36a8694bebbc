#!/usr/bin/env python3
"""
Initialize the case-tracking schema with a direct PostgreSQL connection

Creates:
- tickets: folio-numbered cases (folio unique)
- ticket_folio_counters + next_ticket_folio_sequence(): atomic per-prefix sequence
- contacts: contact directory used for ticket linkage
"""
import os
import psycopg2
from dotenv import load_dotenv

load_dotenv()

TABLES = ["contacts", "ticket_folio_counters", "tickets"]


def get_connection():
    """Get PostgreSQL connection using .env variables"""
    host = os.getenv("SUPABASE_DB_HOST")
    port = int(os.getenv("SUPABASE_DB_PORT", "6543"))
    database = os.getenv("SUPABASE_DB_NAME", "postgres")
    user = os.getenv("SUPABASE_DB_USER")
    password = os.getenv("SUPABASE_DB_PASSWORD")

    print(f"🔗 Connecting to: {host}:{port}")
    print(f"   Database: {database}")
    print(f"   User: {user}")

    return psycopg2.connect(
        host=host,
        port=port,
        database=database,
        user=user,
        password=password
    )


DDL_SQL = """
-- Contact directory
CREATE TABLE IF NOT EXISTS contacts (
    id BIGSERIAL PRIMARY KEY,
    account_id INTEGER NOT NULL DEFAULT 1,
    name TEXT,
    email TEXT,
    phone_number TEXT,
    identifier TEXT,
    custom_attributes JSONB DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- Tickets (folio is the business key)
CREATE TABLE IF NOT EXISTS tickets (
    id BIGSERIAL PRIMARY KEY,
    account_id INTEGER NOT NULL DEFAULT 1,
    folio TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    description TEXT DEFAULT '',
    status TEXT NOT NULL DEFAULT 'open' CHECK (status IN (
        'open', 'in_progress', 'waiting_client', 'waiting_internal',
        'escalated', 'resolved', 'closed', 'cancelled'
    )),
    priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN ('urgent', 'high', 'medium', 'low')),
    ticket_type TEXT NOT NULL,
    service_type TEXT NOT NULL DEFAULT 'general',
    channel TEXT NOT NULL DEFAULT 'whatsapp',
    contract_number TEXT,
    client_name TEXT,
    contact_id BIGINT REFERENCES contacts(id) ON DELETE SET NULL,
    conversation_id BIGINT,
    inbox_id BIGINT,
    metadata JSONB DEFAULT '{}'::jsonb,
    resolution_notes TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),
    resolved_at TIMESTAMPTZ
);

-- Per-prefix folio counters ("FUG-20260106" -> last sequence)
CREATE TABLE IF NOT EXISTS ticket_folio_counters (
    prefix TEXT PRIMARY KEY,
    last_value INTEGER NOT NULL DEFAULT 0,
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE OR REPLACE FUNCTION next_ticket_folio_sequence(p_prefix TEXT)
RETURNS INTEGER
LANGUAGE sql
AS $$
    INSERT INTO ticket_folio_counters AS c (prefix, last_value, updated_at)
    VALUES (p_prefix, 1, NOW())
    ON CONFLICT (prefix)
    DO UPDATE SET last_value = c.last_value + 1, updated_at = NOW()
    RETURNING last_value;
$$;

-- Indexes for performance
CREATE INDEX IF NOT EXISTS idx_tickets_contract_number ON tickets(contract_number);
CREATE INDEX IF NOT EXISTS idx_tickets_status ON tickets(status);
CREATE INDEX IF NOT EXISTS idx_tickets_created_at ON tickets(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_tickets_contact_id ON tickets(contact_id);

CREATE INDEX IF NOT EXISTS idx_contacts_identifier ON contacts(identifier);
CREATE INDEX IF NOT EXISTS idx_contacts_phone_number ON contacts(phone_number);
CREATE INDEX IF NOT EXISTS idx_contacts_contract_number ON contacts((custom_attributes->>'contract_number'));
"""


def create_schema():
    """Create database schema"""
    conn = None
    try:
        conn = get_connection()
        cur = conn.cursor()

        print("🔧 Creating database schema...")
        cur.execute(DDL_SQL)
        conn.commit()
        print("✅ DDL executed successfully")

        # Verify tables
        cur.execute("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
            AND table_name = ANY(%s)
            ORDER BY table_name
        """, (TABLES,))
        tables = cur.fetchall()

        print("\n📊 Created tables:")
        for table in tables:
            print(f"  - {table[0]}")

        for table_name in TABLES:
            cur.execute(f"SELECT COUNT(*) FROM {table_name}")
            count = cur.fetchone()[0]
            print(f"  {table_name}: {count} records")

        cur.close()
        return True

    except Exception as e:
        print(f"❌ Error: {str(e)}")
        if conn:
            conn.rollback()
        return False
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    import sys
    success = create_schema()
    sys.exit(0 if success else 1)
