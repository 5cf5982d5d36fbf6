# gearguard/migrate.py
# Schema creation for PostgreSQL and SQLite
# Run: python -m gearguard.migrate

from gearguard.db import Database, execute_query


def _ddl(is_postgres: bool):
    """Return CREATE statements for the current dialect."""
    pk = "SERIAL PRIMARY KEY" if is_postgres else "INTEGER PRIMARY KEY AUTOINCREMENT"
    real = "DOUBLE PRECISION" if is_postgres else "REAL"

    return [
        f"""
        CREATE TABLE IF NOT EXISTS users (
            id {pk},
            email TEXT UNIQUE NOT NULL,
            name TEXT,
            image TEXT,
            role TEXT NOT NULL,
            package_limit INTEGER,
            current_employees INTEGER,
            subscription TEXT,
            status TEXT,
            company_name TEXT,
            company_logo TEXT,
            position TEXT,
            dob TEXT,
            created_at TEXT NOT NULL
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS assets (
            id {pk},
            hr_email TEXT NOT NULL,
            product_name TEXT NOT NULL,
            product_image TEXT,
            product_type TEXT NOT NULL,
            product_quantity INTEGER NOT NULL,
            available_quantity INTEGER NOT NULL,
            company_name TEXT,
            date_added TEXT NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_assets_hr_date ON assets(hr_email, date_added)",
        f"""
        CREATE TABLE IF NOT EXISTS requests (
            id {pk},
            asset_id INTEGER NOT NULL,
            asset_name TEXT,
            asset_type TEXT,
            asset_image TEXT,
            requester_email TEXT NOT NULL,
            requester_name TEXT,
            hr_email TEXT NOT NULL,
            company_name TEXT,
            note TEXT,
            request_status TEXT NOT NULL DEFAULT 'pending',
            request_date TEXT NOT NULL,
            approval_date TEXT,
            processed_by TEXT
        )
        """,
        # One request per (employee, asset), whatever its status
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_requests_requester_asset ON requests(requester_email, asset_id)",
        "CREATE INDEX IF NOT EXISTS idx_requests_hr_date ON requests(hr_email, request_date)",
        f"""
        CREATE TABLE IF NOT EXISTS assigned_assets (
            id {pk},
            asset_id INTEGER NOT NULL,
            asset_name TEXT,
            asset_image TEXT,
            asset_type TEXT,
            employee_email TEXT NOT NULL,
            employee_name TEXT,
            hr_email TEXT NOT NULL,
            company_name TEXT,
            assignment_date TEXT NOT NULL,
            request_date TEXT,
            return_date TEXT,
            status TEXT NOT NULL DEFAULT 'assigned'
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_assigned_employee ON assigned_assets(employee_email, status)",
        f"""
        CREATE TABLE IF NOT EXISTS affiliations (
            id {pk},
            employee_email TEXT NOT NULL,
            employee_name TEXT,
            hr_email TEXT NOT NULL,
            company_name TEXT,
            company_logo TEXT,
            affiliation_date TEXT NOT NULL,
            removed_date TEXT,
            status TEXT NOT NULL DEFAULT 'active'
        )
        """,
        # At most one active affiliation per (employee, HR)
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_affiliations_active_pair
        ON affiliations(employee_email, hr_email) WHERE status = 'active'
        """,
        "CREATE INDEX IF NOT EXISTS idx_affiliations_company ON affiliations(company_name, status)",
        f"""
        CREATE TABLE IF NOT EXISTS packages (
            id {pk},
            name TEXT UNIQUE NOT NULL,
            employee_limit INTEGER NOT NULL,
            price {real} NOT NULL,
            features TEXT
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS payments (
            id {pk},
            hr_email TEXT NOT NULL,
            package_name TEXT NOT NULL,
            employee_limit INTEGER NOT NULL,
            amount {real} NOT NULL,
            transaction_id TEXT UNIQUE,
            payment_date TEXT NOT NULL,
            status TEXT NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_payments_hr ON payments(hr_email, payment_date)",
    ]


def init_db(database: Database) -> None:
    """
    Create tables and indexes if missing (idempotent).
    Safe to run on every startup.
    """
    print(f"[MIGRATE] Ensuring schema ({'PostgreSQL' if database.is_postgres else 'SQLite'})...")
    with database.session() as store:
        for statement in _ddl(database.is_postgres):
            execute_query(store.conn, statement, None, database.is_postgres)
    print("[MIGRATE] Schema ready")


if __name__ == "__main__":
    db = Database()
    db.open()
    try:
        init_db(db)
    finally:
        db.close()
