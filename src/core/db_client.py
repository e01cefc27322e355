"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import Constants, settings
from src.core.errors import DatabaseError, RecordNotFoundError, UniqueConstraintError


__all__ = [
    "DatabaseError",
    "RecordNotFoundError",
    "UniqueConstraintError",
    "close_connection",
    "count_records",
    "create_record",
    "delete_record",
    "get_connection",
    "get_first_record",
    "get_record",
    "init_db",
    "list_all_records",
    "list_records",
    "parse_filter",
    "sanitize_param",
    "transaction",
    "update_record",
    "update_where",
]

logger = logging.getLogger(__name__)

# Columns stored as JSON text and decoded on read
_JSON_FIELDS = {"data", "metadata"}

# Columns stored as 0/1 integers and decoded to bool on read
_BOOL_FIELDS = {"is_archived", "requires_verification", "is_read"}

# Foreign keys that do not follow the *_id naming convention
_REFERENCE_FIELDS = {"requested_by", "requested_for", "verified_by", "pending_verification", "created_by"}

# Opaque text identifiers; filter values for these are never coerced to numbers or booleans
_TEXT_ID_FIELDS = {
    "user_id",
    "recipient_id",
    "sender_id",
    "resource_id",
    "workspace_id",
    "requested_by",
    "requested_for",
    "verified_by",
    "created_by",
}


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _convert_record(record: dict[str, Any]) -> dict[str, Any]:
    """Convert raw SQLite row values into the shapes the domain models expect.

    Integer ids and foreign keys become strings, JSON columns are decoded and
    boolean flags become real booleans.
    """
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id") or key in _REFERENCE_FIELDS):
            converted[key] = str(value)
        elif key in _BOOL_FIELDS and value is not None:
            converted[key] = bool(value)
        elif key in _JSON_FIELDS and isinstance(value, str):
            try:
                converted[key] = json.loads(value)
            except json.JSONDecodeError:
                logger.warning("Undecodable JSON column", extra={"column": key})
    return converted


def _encode_value(value: Any) -> Any:
    """Encode a Python value for storage."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, field: str = "", is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return value.replace("%", "\\%").replace("_", "\\_")
    if field in _TEXT_ID_FIELDS:
        return value

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | None]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""(\w+)\s*(=|!=|>|<|>=|<=|~)\s*(['"])([^'"]*)\3""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    raw_value = match.group(4)

    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(raw_value, field=field, is_like=is_like)

    return f"{field} {sql_op} ?", value


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]  # Remove parentheses
    or_parts = [p.strip() for p in inner.split("||")]
    or_conditions = []
    or_params = []

    for part in or_parts:
        cond, value = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params = []

    for raw_part in parts:
        part = raw_part.strip()

        # Handle parenthesized OR groups
        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value = _parse_single_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def _safe_sort(sort: str) -> str:
    """Validate an ORDER BY expression, allowing only: column_name [ASC|DESC]."""
    if sort:
        sort_pattern = re.match(r"^[A-Za-z_][A-Za-z0-9_]*\s*(ASC|DESC)?$", sort.strip(), re.IGNORECASE)
        if sort_pattern:
            return sort.strip()
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return "id ASC"


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
# Locks are created per event loop so test suites running many loops never share one
_connect_locks: dict[int, asyncio.Lock] = {}

# One writer at a time per event loop; set while the current task holds a transaction
_write_locks: dict[int, asyncio.Lock] = {}
_in_transaction: ContextVar[bool] = ContextVar("_in_transaction", default=False)


def _cache_key(db_path: str | None) -> tuple[int, int, str]:
    loop = asyncio.get_running_loop()
    return threading.get_ident(), id(loop), str(get_db_path(db_path))


def _loop_lock(locks: dict[int, asyncio.Lock]) -> asyncio.Lock:
    loop_id = id(asyncio.get_running_loop())
    lock = locks.get(loop_id)
    if lock is None:
        lock = asyncio.Lock()
        locks[loop_id] = lock
    return lock


def _get_write_lock() -> asyncio.Lock:
    return _loop_lock(_write_locks)


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    loop = asyncio.get_running_loop()
    cache_key = _cache_key(db_path)
    path = Path(cache_key[2])

    if cache_key in _db_connections:
        cached_conn = _db_connections[cache_key]
        if not loop.is_closed():
            return cached_conn
        async with _loop_lock(_connect_locks):
            _db_connections.pop(cache_key, None)

    async with _loop_lock(_connect_locks):
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": cache_key[0], "loop_id": cache_key[1]},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)

    if cache_key not in _db_connections:
        return

    try:
        async with _loop_lock(_connect_locks):
            if cache_key in _db_connections:
                conn = _db_connections.pop(cache_key)
                await conn.close()
                logger.info("Closed SQLite connection", extra={"db_path": cache_key[2]})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": cache_key[2]})
    finally:
        _write_locks.pop(cache_key[1], None)
        _connect_locks.pop(cache_key[1], None)


@asynccontextmanager
async def transaction() -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed writes as one atomic unit.

    Writers are serialized per event loop and the transaction starts with
    BEGIN IMMEDIATE, so a check-then-write sequence inside the block cannot
    interleave with another writer. Nested use joins the outer transaction.

    The connection is shared, so readers outside the block see the open
    transaction's uncommitted rows until it commits or rolls back.
    """
    if _in_transaction.get():
        yield await get_connection()
        return

    async with _get_write_lock():
        conn = await get_connection()
        token = _in_transaction.set(True)
        try:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()
        finally:
            _in_transaction.reset(token)


async def _execute_write(query: str, params: list[Any] | tuple[Any, ...]) -> aiosqlite.Cursor:
    """Execute a write statement, committing it unless an outer transaction owns the commit."""
    if _in_transaction.get():
        conn = await get_connection()
        return await conn.execute(query, params)

    async with _get_write_lock():
        conn = await get_connection()
        try:
            cursor = await conn.execute(query, params)
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise
        return cursor


def _translate_error(e: Exception, *, collection: str, operation: str) -> Exception:
    """Map driver exceptions onto the client's error types."""
    if isinstance(e, aiosqlite.IntegrityError) and "UNIQUE" in str(e).upper():
        return UniqueConstraintError(f"Unique constraint violated in {collection}: {e}")
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        return DatabaseError(f"Table '{collection}' does not exist. Call init_db() first.")
    return DatabaseError(f"Failed to {operation} {collection}: {e}")


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema

    await schema.init_db(db_path=db_path)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    _validate_collection_name(collection)
    columns = list(data.keys())
    columns_str = ", ".join(columns)
    placeholders_str = ", ".join("?" for _ in columns)
    values = [_encode_value(data[key]) for key in columns]

    query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
    try:
        cursor = await _execute_write(query, values)
    except Exception as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        raise _translate_error(e, collection=collection, operation="create record in") from e

    record_id = cursor.lastrowid
    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=str(record_id))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    if not str(record_id).isdigit():
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    try:
        conn = await get_connection()
        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (int(record_id),))
        row = await cursor.fetchone()
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise _translate_error(e, collection=collection, operation="get record from") from e

    if row is None:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    columns = [description[0] for description in cursor.description]
    return _convert_record(dict(zip(columns, row, strict=True)))


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    if not str(record_id).isdigit():
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    set_clause = ", ".join(f"{key} = ?" for key in data)
    values = [_encode_value(val) for val in data.values()]
    values.append(int(record_id))

    query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
    try:
        cursor = await _execute_write(query, values)
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise _translate_error(e, collection=collection, operation="update record in") from e

    if cursor.rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def update_where(*, collection: str, filter_query: str, data: dict[str, Any]) -> int:
    """Update every record matching the filter and return the number of rows changed.

    Used for conditional writes: a caller that only wants to move a row out of a
    given state puts that state in the filter and inspects the row count.
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)
    if not filter_query:
        msg = "update_where requires a filter"
        raise ValueError(msg)

    _validate_collection_name(collection)
    where_clause, params = parse_filter(filter_query)
    set_clause = ", ".join(f"{key} = ?" for key in data)
    values = [_encode_value(val) for val in data.values()] + params

    query = f"UPDATE {collection} SET {set_clause} WHERE {where_clause}"  # noqa: S608 - collection is validated
    try:
        cursor = await _execute_write(query, values)
    except Exception as e:
        logger.error("update_where_failed", extra={"collection": collection, "error": str(e)})
        raise _translate_error(e, collection=collection, operation="update records in") from e

    logger.info("Updated records", extra={"collection": collection, "count": cursor.rowcount})
    return cursor.rowcount


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    if not str(record_id).isdigit():
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
    try:
        cursor = await _execute_write(query, (int(record_id),))
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        raise _translate_error(e, collection=collection, operation="delete record from") from e

    if cursor.rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    _validate_collection_name(collection)

    where_clause = ""
    params: list[Any] = []
    if filter_query:
        where_clause, params = parse_filter(filter_query)
        where_clause = f"WHERE {where_clause}"

    offset = (page - 1) * per_page
    query = f"SELECT * FROM {collection} {where_clause} ORDER BY {_safe_sort(sort)} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
    params.extend([per_page, offset])

    try:
        conn = await get_connection()
        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        raise _translate_error(e, collection=collection, operation="list records from") from e

    columns = [description[0] for description in cursor.description]
    records = [_convert_record(dict(zip(columns, row, strict=True))) for row in rows]

    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    per_page: int = Constants.DEFAULT_PER_PAGE_LIMIT,
) -> list[dict[str, Any]]:
    """List every record matching the filter, fetching page by page."""
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            filter_query=filter_query,
            sort=sort,
            page=page,
            per_page=per_page,
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


async def count_records(*, collection: str, filter_query: str = "") -> int:
    """Count records matching an optional filter."""
    _validate_collection_name(collection)

    where_clause, params = parse_filter(filter_query)
    query = f"SELECT COUNT(*) FROM {collection}"  # noqa: S608 - collection is validated
    if where_clause:
        query += f" WHERE {where_clause}"

    try:
        conn = await get_connection()
        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
    except Exception as e:
        logger.error("count_records_failed", extra={"collection": collection, "error": str(e)})
        raise _translate_error(e, collection=collection, operation="count records in") from e

    return int(row[0]) if row else 0


async def get_first_record(*, collection: str, filter_query: str, sort: str = "") -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, sort=sort, per_page=1)
    return records[0] if records else None
