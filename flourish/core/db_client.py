"""Document store contract and its SQLite implementation.

Documents are JSON objects grouped into named collections. Every document
carries ``id``, ``created`` and ``updated`` system fields in addition to its
own data. Filters use a small expression language shared with the in-memory
store used by the tests:

    user_id = "u1" && scheduled_at >= "2026-01-01T00:00:00+00:00"

Supported operators are ``= != > < >= <= ~`` (``~`` is a case-insensitive
contains). Conditions are joined with ``&&``; parenthesized groups may join
conditions with ``||``.
"""

import json
import logging
import re
import uuid
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType
from typing import Any, Protocol, Self

import aiosqlite

from flourish.core.config import constants, settings
from flourish.core.schema import DOCUMENTS_INDEXES, DOCUMENTS_TABLE


logger = logging.getLogger(__name__)

_SYSTEM_COLUMNS = {"id", "created", "updated"}


class DatabaseError(RuntimeError):
    """A document store operation failed."""


class RecordNotFoundError(KeyError):
    """The requested document does not exist."""


class DocumentStore(Protocol):
    """Async document database consumed by the engine services."""

    async def create_record(self, *, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a document and return it with its assigned id."""
        ...

    async def get_record(self, *, collection: str, record_id: str) -> dict[str, Any]:
        """Fetch a document by id, raising RecordNotFoundError if absent."""
        ...

    async def update_record(self, *, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Merge a partial update into a document and return the result."""
        ...

    async def delete_record(self, *, collection: str, record_id: str) -> None:
        """Delete a document, raising RecordNotFoundError if absent."""
        ...

    async def list_records(
        self,
        *,
        collection: str,
        page: int = 1,
        per_page: int = 50,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List documents with optional filtering, sorting, and pagination."""
        ...


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _encode_value(value: Any) -> Any:
    """Make a value JSON-serializable for storage."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).isoformat()
    if isinstance(value, dict):
        return {k: _encode_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_encode_value(v) for v in value]
    return value


def _field_expression(field: str) -> str:
    """SQL expression addressing a document field."""
    if field in _SYSTEM_COLUMNS:
        return field
    return f"json_extract(data, '$.{field}')"


def _is_number(value: str) -> bool:
    return value.lstrip("-").replace(".", "", 1).isdigit()


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


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])(.*)\3$""",
        comparison.strip(),
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    sql_op = _get_sql_operator(match.group(2))
    raw_value = match.group(4)
    expression = _field_expression(field)

    if sql_op == "LIKE":
        escaped = raw_value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return f"{expression} LIKE ? ESCAPE '\\'", f"%{escaped}%"

    if raw_value.lower() in ("true", "false"):
        return f"{expression} {sql_op} ?", int(raw_value.lower() == "true")

    if _is_number(raw_value) and field not in _SYSTEM_COLUMNS:
        number: int | float = float(raw_value) if "." in raw_value else int(raw_value)
        return f"CAST({expression} AS NUMERIC) {sql_op} ?", number

    return f"{expression} {sql_op} ?", raw_value


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float]]:
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


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params: list[str | int | float] = []

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


def parse_sort(sort: str) -> str:
    """Translate ``+field`` / ``-field`` / ``field [ASC|DESC]`` into an ORDER BY clause."""
    sort = sort.strip()
    if not sort:
        return "created ASC, id ASC"

    match = re.match(r"^([+-]?)([A-Za-z_][A-Za-z0-9_]*)\s*(ASC|DESC)?$", sort, re.IGNORECASE)
    if not match:
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
        return "created ASC, id ASC"

    prefix, field, direction = match.groups()
    if direction is None:
        direction = "DESC" if prefix == "-" else "ASC"
    return f"{_field_expression(field)} {direction.upper()}, id ASC"


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


class SQLiteDocumentStore:
    """Document store persisting JSON documents in a single SQLite table.

    Usage:
        async with SQLiteDocumentStore(db_path="flourish.db") as store:
            await store.create_record(collection="tasks", data={...})
    """

    def __init__(self, *, db_path: str | None = None) -> None:
        self._path = get_db_path(db_path) if db_path != ":memory:" else None
        self._conn: aiosqlite.Connection | None = None

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def connect(self) -> aiosqlite.Connection:
        """Open the connection and create the schema if needed."""
        if self._conn is not None:
            return self._conn

        if self._path is None:
            target = ":memory:"
        else:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            target = str(self._path)

        conn = await aiosqlite.connect(target)
        await conn.execute("PRAGMA journal_mode = WAL")
        await conn.execute(DOCUMENTS_TABLE)
        for index in DOCUMENTS_INDEXES:
            await conn.execute(index)
        await conn.commit()

        self._conn = conn
        logger.info("Opened SQLite document store", extra={"db_path": target})
        return conn

    async def close(self) -> None:
        """Close the connection if open."""
        if self._conn is None:
            return
        try:
            await self._conn.close()
            logger.info("Closed SQLite document store")
        except Exception as e:
            logger.warning("Error closing SQLite connection", extra={"error": str(e)})
        finally:
            self._conn = None

    @staticmethod
    def _row_to_record(row: tuple[str, str, str, str]) -> dict[str, Any]:
        record_id, created, updated, data = row
        return {"id": record_id, "created": created, "updated": updated, **json.loads(data)}

    async def create_record(self, *, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a new document and return it with its assigned id."""
        try:
            _validate_collection_name(collection)
            conn = await self.connect()

            payload = {k: _encode_value(v) for k, v in data.items() if k not in _SYSTEM_COLUMNS}
            record_id = str(data.get("id") or uuid.uuid4().hex)
            now = datetime.now(UTC).isoformat()

            await conn.execute(
                "INSERT INTO documents (collection, id, created, updated, data) VALUES (?, ?, ?, ?, ?)",
                (collection, record_id, now, now, json.dumps(payload)),
            )
            await conn.commit()

            logger.info("Created record", extra={"collection": collection, "record_id": record_id})
            return {"id": record_id, "created": now, "updated": now, **payload}
        except Exception as e:
            logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to create record in {collection}: {e}"
            raise DatabaseError(msg) from e

    async def get_record(self, *, collection: str, record_id: str) -> dict[str, Any]:
        """Fetch a single document by ID, raising RecordNotFoundError if not found."""
        try:
            _validate_collection_name(collection)
            conn = await self.connect()

            cursor = await conn.execute(
                "SELECT id, created, updated, data FROM documents WHERE collection = ? AND id = ?",
                (collection, record_id),
            )
            row = await cursor.fetchone()
        except Exception as e:
            logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
            msg = f"Failed to get record from {collection}: {e}"
            raise DatabaseError(msg) from e

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        return self._row_to_record(row)

    async def update_record(self, *, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Merge a partial update into a document and return the updated document."""
        if not data:
            msg = "Empty update payload"
            raise ValueError(msg)

        existing = await self.get_record(collection=collection, record_id=record_id)

        try:
            conn = await self.connect()
            merged = {k: v for k, v in existing.items() if k not in _SYSTEM_COLUMNS}
            merged.update({k: _encode_value(v) for k, v in data.items() if k not in _SYSTEM_COLUMNS})
            now = datetime.now(UTC).isoformat()

            await conn.execute(
                "UPDATE documents SET data = ?, updated = ? WHERE collection = ? AND id = ?",
                (json.dumps(merged), now, collection, record_id),
            )
            await conn.commit()

            logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
            return {"id": record_id, "created": existing["created"], "updated": now, **merged}
        except Exception as e:
            logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
            msg = f"Failed to update record in {collection}: {e}"
            raise DatabaseError(msg) from e

    async def delete_record(self, *, collection: str, record_id: str) -> None:
        """Delete a document by ID, raising RecordNotFoundError if not found."""
        try:
            _validate_collection_name(collection)
            conn = await self.connect()

            cursor = await conn.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, record_id),
            )
            await conn.commit()
        except Exception as e:
            logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
            msg = f"Failed to delete record from {collection}: {e}"
            raise DatabaseError(msg) from e

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})

    async def list_records(
        self,
        *,
        collection: str,
        page: int = 1,
        per_page: int = constants.DEFAULT_PER_PAGE_LIMIT,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List documents with optional filtering, sorting, and pagination."""
        try:
            _validate_collection_name(collection)
            conn = await self.connect()

            where_clause, params = parse_filter(filter_query)
            where_sql = f"AND {where_clause}" if where_clause else ""
            order_by = parse_sort(sort)
            offset = (page - 1) * per_page

            query = (
                "SELECT id, created, updated, data FROM documents "  # noqa: S608 - fields are validated
                f"WHERE collection = ? {where_sql} ORDER BY {order_by} LIMIT ? OFFSET ?"
            )
            cursor = await conn.execute(query, [collection, *params, per_page, offset])
            rows = await cursor.fetchall()

            records = [self._row_to_record(row) for row in rows]
            logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
            return records
        except Exception as e:
            logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to list records from {collection}: {e}"
            raise DatabaseError(msg) from e
