# gearguard/db.py
# Persistence gateway supporting PostgreSQL (production) and SQLite (dev)
#
# One Database handle is built at process start and closed at shutdown.
# Every unit of work runs inside Database.session(), which yields a Store whose
# collections share one connection; the session commits once on success and
# rolls back on any exception.

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path as FsPath
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlparse

from sqlalchemy import create_engine, pool, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError as SQLAlchemyIntegrityError
from sqlalchemy.exc import SQLAlchemyError

from gearguard.config import DATABASE_PATH, DATABASE_URL, IS_DEV


class DatabaseError(Exception):
    """Raised when the underlying driver fails."""


class DuplicateKeyError(DatabaseError):
    """Raised when a write violates a unique index."""


# ---------------------------------------------------------
# Record sets
# ---------------------------------------------------------
# Column whitelist per table. Filters, sorts and writes may only name these
# (plus "id"), so no client-supplied string ever reaches SQL unbound.
TABLES: Dict[str, Tuple[str, ...]] = {
    "users": (
        "email", "name", "image", "role", "package_limit", "current_employees",
        "subscription", "status", "company_name", "company_logo", "position",
        "dob", "created_at",
    ),
    "assets": (
        "hr_email", "product_name", "product_image", "product_type",
        "product_quantity", "available_quantity", "company_name", "date_added",
    ),
    "requests": (
        "asset_id", "asset_name", "asset_type", "asset_image", "requester_email",
        "requester_name", "hr_email", "company_name", "note", "request_status",
        "request_date", "approval_date", "processed_by",
    ),
    "assigned_assets": (
        "asset_id", "asset_name", "asset_image", "asset_type", "employee_email",
        "employee_name", "hr_email", "company_name", "assignment_date",
        "request_date", "return_date", "status",
    ),
    "affiliations": (
        "employee_email", "employee_name", "hr_email", "company_name",
        "company_logo", "affiliation_date", "removed_date", "status",
    ),
    "packages": ("name", "employee_limit", "price", "features"),
    "payments": (
        "hr_email", "package_name", "employee_limit", "amount",
        "transaction_id", "payment_date", "status",
    ),
}

JSON_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "packages": ("features",),
}

# Filter suffixes: {"available_quantity__gt": 0}
OPERATORS = {
    "": "=",
    "ne": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}

Sort = Sequence[Tuple[str, int]]


# ---------------------------------------------------------
# Row Conversion Helper
# ---------------------------------------------------------
def row_to_dict(row) -> dict:
    """
    Convert a sqlite3.Row or SQLAlchemy Row to a plain dict.

    Returns {} for None so callers can use .get() unconditionally.
    """
    if row is None:
        return {}
    if hasattr(row, "_mapping"):
        return dict(row._mapping)
    return dict(row)


def escape_like(text: str) -> str:
    """Make LIKE wildcards in user input match literally (paired with ESCAPE '\\')."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def execute_query(
    conn: Union[sqlite3.Connection, Connection],
    query: str,
    params: Optional[Dict[str, Any]] = None,
    is_postgres: bool = False,
) -> Any:
    """
    Execute a query with named (:name) parameters on either driver.

    Both sqlite3 and SQLAlchemy's text() accept the :name style, so queries
    are written once.

    Raises:
        DuplicateKeyError: unique index violation
        DatabaseError: any other driver failure
    """
    try:
        if is_postgres:
            return conn.execute(text(query), params or {})
        return conn.execute(query, params or {})
    except (sqlite3.IntegrityError, SQLAlchemyIntegrityError) as e:
        if IS_DEV:
            print(f"[DB] Integrity error: {e}")
        raise DuplicateKeyError(str(e)) from e
    except (sqlite3.Error, SQLAlchemyError) as e:
        print(f"[DB] Query failed: {e}")
        raise DatabaseError(str(e)) from e


# ---------------------------------------------------------
# Collection
# ---------------------------------------------------------
class Collection:
    """
    One record set bound to an open connection.

    Filters are dicts of column -> value. A list/tuple/set value means IN,
    None means IS NULL, and a "__op" suffix selects a comparison
    (ne, gt, gte, lt, lte, in, ilike). The key "$or" takes a list of filter
    dicts joined with OR.
    """

    def __init__(
        self,
        conn: Union[sqlite3.Connection, Connection],
        table: str,
        is_postgres: bool = False,
    ):
        self.conn = conn
        self.table = table
        self.columns = set(TABLES[table]) | {"id"}
        self.json_columns = set(JSON_COLUMNS.get(table, ()))
        self.is_postgres = is_postgres

    # -- helpers ---------------------------------------------------------

    def _column(self, name: str) -> str:
        if name not in self.columns:
            raise ValueError(f"Unknown column {self.table}.{name}")
        return name

    def _encode(self, column: str, value: Any) -> Any:
        if column in self.json_columns and value is not None:
            return json.dumps(value)
        return value

    def _decode(self, row) -> Dict[str, Any]:
        doc = row_to_dict(row)
        for column in self.json_columns:
            raw = doc.get(column)
            if isinstance(raw, str):
                try:
                    doc[column] = json.loads(raw)
                except json.JSONDecodeError:
                    doc[column] = None
        return doc

    @staticmethod
    def _bind(params: Dict[str, Any], value: Any) -> str:
        key = f"p{len(params)}"
        params[key] = value
        return f":{key}"

    def _where(self, where: Optional[Dict[str, Any]], params: Dict[str, Any]) -> str:
        clauses: List[str] = []
        for key, value in (where or {}).items():
            if key == "$or":
                parts = [f"({self._where(sub, params)})" for sub in value]
                clauses.append(f"({' OR '.join(parts)})" if parts else "1 = 0")
                continue

            name, _, op = key.partition("__")
            column = self._column(name)

            if op == "in" or isinstance(value, (list, tuple, set, frozenset)):
                values = list(value)
                if not values:
                    clauses.append("1 = 0")
                    continue
                placeholders = ", ".join(self._bind(params, self._encode(column, v)) for v in values)
                clauses.append(f"{column} IN ({placeholders})")
            elif op == "ilike":
                pattern = f"%{escape_like(str(value).lower())}%"
                clauses.append(f"LOWER({column}) LIKE {self._bind(params, pattern)} ESCAPE '\\'")
            elif value is None and op in ("", "ne"):
                clauses.append(f"{column} IS NULL" if op == "" else f"{column} IS NOT NULL")
            else:
                if op not in OPERATORS:
                    raise ValueError(f"Unknown filter operator: {op}")
                clauses.append(f"{column} {OPERATORS[op]} {self._bind(params, self._encode(column, value))}")

        return " AND ".join(clauses) if clauses else "1 = 1"

    def _order_by(self, sort: Optional[Sort]) -> str:
        if not sort:
            return " ORDER BY id ASC"
        terms = []
        for column, direction in sort:
            terms.append(f"{self._column(column)} {'DESC' if direction < 0 else 'ASC'}")
        if "id" not in {column for column, _ in sort}:
            # Stable tiebreak for rows stamped in the same instant
            terms.append(f"id {'DESC' if sort[-1][1] < 0 else 'ASC'}")
        return " ORDER BY " + ", ".join(terms)

    def _assignments(
        self,
        set: Optional[Dict[str, Any]],
        inc: Optional[Dict[str, int]],
        params: Dict[str, Any],
    ) -> str:
        parts = []
        for column, value in (set or {}).items():
            parts.append(f"{self._column(column)} = {self._bind(params, self._encode(column, value))}")
        for column, delta in (inc or {}).items():
            col = self._column(column)
            parts.append(f"{col} = {col} + {self._bind(params, delta)}")
        if not parts:
            raise ValueError("update requires set or inc")
        return ", ".join(parts)

    def _execute(self, sql: str, params: Dict[str, Any]) -> Any:
        return execute_query(self.conn, sql, params, self.is_postgres)

    # -- reads -----------------------------------------------------------

    def find_one(
        self,
        where: Optional[Dict[str, Any]] = None,
        sort: Optional[Sort] = None,
    ) -> Optional[Dict[str, Any]]:
        docs = self.find(where, sort=sort, limit=1)
        return docs[0] if docs else None

    def find(
        self,
        where: Optional[Dict[str, Any]] = None,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        sql = f"SELECT * FROM {self.table} WHERE {self._where(where, params)}{self._order_by(sort)}"
        if limit is not None:
            sql += f" LIMIT {self._bind(params, int(limit))}"
        if skip:
            if limit is None:
                # SQLite requires LIMIT before OFFSET
                sql += " LIMIT -1" if not self.is_postgres else " LIMIT ALL"
            sql += f" OFFSET {self._bind(params, int(skip))}"
        rows = self._execute(sql, params).fetchall()
        return [self._decode(row) for row in rows]

    def count(self, where: Optional[Dict[str, Any]] = None) -> int:
        params: Dict[str, Any] = {}
        sql = f"SELECT COUNT(*) AS n FROM {self.table} WHERE {self._where(where, params)}"
        row = self._execute(sql, params).fetchone()
        return int(row_to_dict(row).get("n") or 0)

    def distinct(self, column: str, where: Optional[Dict[str, Any]] = None) -> List[Any]:
        params: Dict[str, Any] = {}
        col = self._column(column)
        sql = f"SELECT DISTINCT {col} AS value FROM {self.table} WHERE {self._where(where, params)} ORDER BY {col}"
        return [row_to_dict(row)["value"] for row in self._execute(sql, params).fetchall()]

    def group_count(
        self,
        column: str,
        where: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[Any, int]]:
        """Return (value, count) pairs for column, most frequent first."""
        params: Dict[str, Any] = {}
        col = self._column(column)
        sql = (
            f"SELECT {col} AS value, COUNT(*) AS n FROM {self.table} "
            f"WHERE {self._where(where, params)} GROUP BY {col} ORDER BY n DESC, {col} ASC"
        )
        if limit is not None:
            sql += f" LIMIT {self._bind(params, int(limit))}"
        rows = [row_to_dict(row) for row in self._execute(sql, params).fetchall()]
        return [(row["value"], int(row["n"])) for row in rows]

    # -- writes ----------------------------------------------------------

    def insert_one(self, doc: Dict[str, Any]) -> int:
        """Insert a document and return its id."""
        params: Dict[str, Any] = {}
        columns = [self._column(c) for c in doc if c != "id"]
        placeholders = [self._bind(params, self._encode(c, doc[c])) for c in columns]
        sql = f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({', '.join(placeholders)})"
        if self.is_postgres:
            return int(self._execute(sql + " RETURNING id", params).scalar_one())
        return int(self._execute(sql, params).lastrowid)

    def insert_many(self, docs: Iterable[Dict[str, Any]]) -> List[int]:
        return [self.insert_one(doc) for doc in docs]

    def _first_match(self, where: Dict[str, Any], params: Dict[str, Any]) -> str:
        # The filter is repeated outside the subquery so a writer that waited on
        # the row lock re-checks it against the committed row (PostgreSQL READ COMMITTED)
        condition = self._where(where, params)
        return (
            f"{condition} AND id = "
            f"(SELECT id FROM {self.table} WHERE {self._where(where, params)} ORDER BY id LIMIT 1)"
        )

    def update_one(
        self,
        where: Dict[str, Any],
        set: Optional[Dict[str, Any]] = None,
        inc: Optional[Dict[str, int]] = None,
    ) -> int:
        """Update the first matching row; returns the modified count (0 or 1)."""
        params: Dict[str, Any] = {}
        assignments = self._assignments(set, inc, params)
        sql = f"UPDATE {self.table} SET {assignments} WHERE {self._first_match(where, params)}"
        return self._execute(sql, params).rowcount

    def update_many(
        self,
        where: Dict[str, Any],
        set: Optional[Dict[str, Any]] = None,
        inc: Optional[Dict[str, int]] = None,
    ) -> int:
        params: Dict[str, Any] = {}
        assignments = self._assignments(set, inc, params)
        sql = f"UPDATE {self.table} SET {assignments} WHERE {self._where(where, params)}"
        return self._execute(sql, params).rowcount

    def delete_one(self, where: Dict[str, Any]) -> int:
        params: Dict[str, Any] = {}
        sql = f"DELETE FROM {self.table} WHERE {self._first_match(where, params)}"
        return self._execute(sql, params).rowcount


# ---------------------------------------------------------
# Store (one connection, all collections)
# ---------------------------------------------------------
class Store:
    """Collections sharing one connection and therefore one transaction."""

    def __init__(self, conn: Union[sqlite3.Connection, Connection], is_postgres: bool = False):
        self.conn = conn
        self.is_postgres = is_postgres
        self.users = Collection(conn, "users", is_postgres)
        self.assets = Collection(conn, "assets", is_postgres)
        self.requests = Collection(conn, "requests", is_postgres)
        self.assigned_assets = Collection(conn, "assigned_assets", is_postgres)
        self.affiliations = Collection(conn, "affiliations", is_postgres)
        self.packages = Collection(conn, "packages", is_postgres)
        self.payments = Collection(conn, "payments", is_postgres)


# ---------------------------------------------------------
# Database handle
# ---------------------------------------------------------
class Database:
    """
    Explicitly constructed persistence handle.

    open() at process start, close() at shutdown. SQLite opens a fresh
    connection per session; PostgreSQL draws from a pooled SQLAlchemy engine.
    """

    def __init__(self, url: str = DATABASE_URL, path: str = DATABASE_PATH):
        self.url = (url or "").strip()
        self.is_postgres = self.url.startswith(("postgres://", "postgresql://"))
        self.path = str(FsPath(__file__).resolve().parent / path)
        self._engine: Optional[Engine] = None
        self.is_open = False

    def open(self) -> None:
        if self.is_open:
            return

        if self.is_postgres:
            parsed = urlparse(self.url)
            if not parsed.scheme or not parsed.netloc:
                raise ValueError(f"Invalid DATABASE_URL: {self.url[:20]}...")

            # SQLAlchemy only accepts the postgresql:// scheme
            url = self.url.replace("postgres://", "postgresql://", 1)
            self._engine = create_engine(
                url,
                poolclass=pool.QueuePool,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                echo=False,
            )
            print(f"[DB] Using PostgreSQL ({parsed.hostname})")
        else:
            print(f"[DB] Using SQLite ({self.path})")

        self.is_open = True

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self.is_open = False
        print("[DB] Closed")

    @contextmanager
    def connect(self) -> Iterator[Union[sqlite3.Connection, Connection]]:
        """Yield a raw connection (no transaction management)."""
        if not self.is_open:
            raise DatabaseError("Database is not open")

        if self.is_postgres:
            with self._engine.connect() as conn:
                yield conn
        else:
            # Handlers may run on a different worker thread than the one that opened the connection
            conn = sqlite3.connect(self.path, check_same_thread=False, timeout=30)
            conn.row_factory = sqlite3.Row
            try:
                yield conn
            finally:
                conn.close()

    @contextmanager
    def session(self) -> Iterator[Store]:
        """
        Yield a Store whose writes commit together.

        Any exception escaping the block rolls the whole session back.
        """
        with self.connect() as conn:
            store = Store(conn, self.is_postgres)
            try:
                yield store
            except BaseException:
                conn.rollback()
                raise
            else:
                conn.commit()


def paginate(
    collection: Collection,
    where: Optional[Dict[str, Any]],
    sort: Optional[Sort],
    page: int = 1,
    page_size: int = 10,
) -> Dict[str, Any]:
    """Return one page of documents plus total/page metadata."""
    page = max(int(page), 1)
    page_size = max(int(page_size), 1)
    total = collection.count(where)
    items = collection.find(where, sort=sort, skip=(page - 1) * page_size, limit=page_size)
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": (total + page_size - 1) // page_size,
    }
