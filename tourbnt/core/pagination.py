"""
Pagination, filtering and sorting helpers.

List endpoints accept ``page``, ``limit`` (a number up to ``MAX_LIMIT`` or
``"all"``), ``sortBy``/``sortOrder`` and, where a resource allows it,
``sort``/``order`` plus a whitelist of filter keys.

``hybrid_paginate`` serves ``limit=all`` in one of two ways. Result sets up to
``memory_threshold`` rows are loaded and returned as a regular paginated
envelope. Larger ones are streamed row by row as a JSON document with the
same shape, so the full result never sits in memory.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from fastapi import Request
from fastapi.responses import StreamingResponse
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from .database.repositories.base import QueryBuilder
from .errors import SERVER_ERROR, ApiError
from .logging_config import get_logger
from .normalize import normalize_for_api
from .responses import paginated_response

logger = get_logger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_ORDER = "desc"
DEFAULT_MEMORY_THRESHOLD = 100
DEFAULT_MESSAGE = "Items retrieved successfully"
ALL = "all"

INVALID_PAGINATION = "INVALID_PAGINATION"
INVALID_SORT_FIELD = "INVALID_SORT_FIELD"

Limit = Union[int, str]
Serializer = Callable[[Any], Any]
BatchSerializer = Callable[[AsyncSession, List[Any]], Awaitable[List[Any]]]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass(frozen=True)
class PaginationParams:
    """Resolved pagination request."""

    page: int = DEFAULT_PAGE
    limit: Limit = DEFAULT_LIMIT
    skip: int = 0
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER

    @property
    def fetch_all(self) -> bool:
        return self.limit == ALL or (isinstance(self.limit, int) and self.limit > MAX_LIMIT)


@dataclass
class FilterSort:
    """Whitelisted filters and sort order taken from the query string."""

    filters: Dict[str, str] = field(default_factory=dict)
    sort_field: Optional[str] = None
    sort_order: str = "asc"
    search: Optional[str] = None

    def sort_column(self, default: str = "created_at") -> str:
        return column_name(self.sort_field) if self.sort_field else default

    def order(self, default: str = DEFAULT_SORT_ORDER) -> str:
        return self.sort_order if self.sort_field else default

    def resolve(self, params: "PaginationParams") -> Tuple[str, str]:
        """``(column, order)``: ``sort``/``order`` when given, else ``sortBy``/``sortOrder``."""
        return self.sort_column(column_name(params.sort_by)), self.order(params.sort_order)


def parse_int(value: Any) -> Optional[int]:
    """Read a leading integer the way query strings are usually interpreted (``"12abc"`` -> 12)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def column_name(field_name: str) -> str:
    """Map an API field name (``createdAt``) to its column (``created_at``)."""
    return _CAMEL_BOUNDARY.sub("_", field_name).lower()


def parse_pagination_params(query: Mapping[str, Any]) -> PaginationParams:
    """Lenient parsing: invalid values fall back to the defaults.

    A numeric ``limit`` is capped at ``MAX_LIMIT``; ``"all"`` is kept as is.
    """
    page = DEFAULT_PAGE
    parsed_page = parse_int(query.get("page"))
    if parsed_page is not None and parsed_page > 0:
        page = parsed_page

    limit: Limit = DEFAULT_LIMIT
    raw_limit = query.get("limit")
    if raw_limit is not None and str(raw_limit).strip().lower() == ALL:
        limit = ALL
    else:
        parsed_limit = parse_int(raw_limit)
        if parsed_limit is not None and parsed_limit > 0:
            limit = min(parsed_limit, MAX_LIMIT)

    skip = (page - 1) * limit if isinstance(limit, int) else 0
    sort_by = query.get("sortBy") or DEFAULT_SORT_BY
    sort_order = "asc" if query.get("sortOrder") == "asc" else DEFAULT_SORT_ORDER
    return PaginationParams(page=page, limit=limit, skip=skip, sort_by=sort_by, sort_order=sort_order)


def validate_pagination_params(page: int, limit: Limit) -> List[str]:
    """Return the list of problems with ``page``/``limit``; empty when valid."""
    errors: List[str] = []
    if page < 1:
        errors.append("Page number must be greater than 0")
    if isinstance(limit, int):
        if limit < 1:
            errors.append("Limit must be greater than 0")
        if limit > MAX_LIMIT:
            errors.append(f'Limit cannot exceed {MAX_LIMIT}. Use "all" to fetch all items.')
    return errors


def calculate_pagination_meta(total_items: int, page: int, limit: Limit) -> Dict[str, int]:
    if limit == ALL:
        return {"page": 1, "limit": total_items, "totalItems": total_items, "totalPages": 1 if total_items else 0}
    total_pages = math.ceil(total_items / limit) if limit else 0
    return {"page": page, "limit": limit, "totalItems": total_items, "totalPages": total_pages}


# =====================================================================
# FastAPI dependencies
# =====================================================================


async def pagination_params(request: Request) -> PaginationParams:
    """Strict pagination dependency for list endpoints.

    Missing or zero values use the defaults; negative pages and limits outside
    1..MAX_LIMIT are rejected with ``INVALID_PAGINATION``. ``limit=all`` is accepted.
    """
    query = request.query_params
    raw_limit = query.get("limit")
    fetch_all = raw_limit is not None and raw_limit.strip().lower() == ALL

    page = parse_int(query.get("page")) or DEFAULT_PAGE
    limit: Limit = ALL if fetch_all else (parse_int(raw_limit) or DEFAULT_LIMIT)

    details: Dict[str, str] = {}
    if page < 1:
        details["page"] = "Page must be >= 1"
    if isinstance(limit, int):
        if limit < 1:
            details["limit"] = "Limit must be >= 1"
        elif limit > MAX_LIMIT:
            details["limit"] = f"Limit must be <= {MAX_LIMIT}"
    if details:
        raise ApiError(400, "Invalid pagination parameters", INVALID_PAGINATION, details)

    return PaginationParams(
        page=page,
        limit=limit,
        skip=(page - 1) * limit if isinstance(limit, int) else 0,
        sort_by=query.get("sortBy") or DEFAULT_SORT_BY,
        sort_order="asc" if query.get("sortOrder") == "asc" else DEFAULT_SORT_ORDER,
    )


def filter_sort(allowed_filters: Sequence[str], allowed_sort_fields: Sequence[str]):
    """Build a dependency that reads whitelisted filters and ``sort``/``order``.

    ``order`` only means descending when it is literally ``desc``. An unknown
    sort field is rejected with ``INVALID_SORT_FIELD``.
    """

    async def dependency(request: Request) -> FilterSort:
        query = request.query_params
        filters = {key: query[key] for key in allowed_filters if query.get(key)}

        sort_field = query.get("sort")
        sort_order = "asc"
        if sort_field:
            if sort_field not in allowed_sort_fields:
                raise ApiError(
                    400,
                    f"Invalid sort field: {sort_field}",
                    INVALID_SORT_FIELD,
                    {"allowedFields": list(allowed_sort_fields), "providedField": sort_field},
                )
            sort_order = "desc" if (query.get("order") or "").lower() == "desc" else "asc"

        return FilterSort(
            filters=filters,
            sort_field=sort_field or None,
            sort_order=sort_order,
            search=query.get("search") or None,
        )

    return dependency


# =====================================================================
# Query execution
# =====================================================================


async def count_rows(session: AsyncSession, stmt) -> int:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    result = await session.execute(count_stmt)
    return int(result.scalar_one())


async def fetch_page(session: AsyncSession, stmt, params: PaginationParams) -> Tuple[List[Any], int]:
    """Run ``stmt`` for one page and return ``(rows, total)``."""
    total = await count_rows(session, stmt)
    if not params.fetch_all:
        stmt = stmt.offset(params.skip).limit(params.limit)
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def _serialize_rows(
    session: AsyncSession, rows: List[Any], serializer: Serializer, batch_serializer: Optional[BatchSerializer]
) -> List[Any]:
    if batch_serializer is not None:
        return list(await batch_serializer(session, rows))
    return [serializer(row) for row in rows]


async def _stream_items(
    bind,
    stmt,
    total: int,
    serializer: Serializer,
    batch_serializer: Optional[BatchSerializer],
    message: str,
    batch_size: int,
) -> AsyncIterator[str]:
    yield '{"success":true,"items":['
    # the request scoped session may already be closed once the body is sent
    async with AsyncSession(bind, expire_on_commit=False) as stream_session:
        try:
            result = await stream_session.stream_scalars(stmt.execution_options(yield_per=batch_size))
            first = True
            async for rows in result.partitions(batch_size):
                for item in await _serialize_rows(stream_session, list(rows), serializer, batch_serializer):
                    chunk = json.dumps(item, default=str, ensure_ascii=False)
                    yield chunk if first else "," + chunk
                    first = False
        except SQLAlchemyError:
            # headers are already sent, so the status can no longer change
            logger.error("Streaming pagination aborted", exc_info=True)
            raise
    pagination = {"page": 1, "limit": total, "totalItems": total, "totalPages": 1}
    yield f'],"pagination":{json.dumps(pagination, separators=(",", ":"))},"message":{json.dumps(message)}}}'


async def hybrid_paginate(
    session: AsyncSession,
    stmt,
    params: PaginationParams,
    *,
    serializer: Optional[Serializer] = None,
    batch_serializer: Optional[BatchSerializer] = None,
    memory_threshold: int = DEFAULT_MEMORY_THRESHOLD,
    message: str = DEFAULT_MESSAGE,
    batch_size: int = 100,
) -> Union[Dict[str, Any], StreamingResponse]:
    """Paginate ``stmt``, streaming large ``limit=all`` results.

    Args:
        session: Request scoped session
        stmt: Select statement with filters and ordering already applied
        params: Resolved pagination parameters
        serializer: Turns a row into a JSON compatible value, ``normalize_for_api`` by default
        batch_serializer: Async alternative to ``serializer`` that receives a whole page
            (or streaming batch) of rows, for endpoints that embed related records
        memory_threshold: Largest row count that is still loaded in one go
        message: Envelope message
        batch_size: Rows fetched per round trip while streaming

    Returns:
        The paginated envelope, or a ``StreamingResponse`` producing the same shape

    Raises:
        ApiError: 500 when the database query fails
    """
    serializer = serializer or normalize_for_api
    try:
        if params.fetch_all:
            total = await count_rows(session, stmt)
            if total > memory_threshold:
                logger.info(f"Streaming {total} rows (threshold {memory_threshold})")
                return StreamingResponse(
                    _stream_items(session.bind, stmt, total, serializer, batch_serializer, message, batch_size),
                    media_type="application/json",
                )
            result = await session.execute(stmt)
            items = await _serialize_rows(session, list(result.scalars().all()), serializer, batch_serializer)
            return paginated_response(
                items, {"page": 1, "limit": total, "totalItems": total, "totalPages": 1}, message
            )

        rows, total = await fetch_page(session, stmt, params)
        items = await _serialize_rows(session, rows, serializer, batch_serializer)
        return paginated_response(items, calculate_pagination_meta(total, params.page, params.limit), message)
    except SQLAlchemyError as e:
        logger.error(f"Pagination query failed: {e}", exc_info=True)
        raise ApiError(500, f"Failed to fetch items: {e}", SERVER_ERROR) from e


async def paginate(
    session: AsyncSession,
    model,
    *,
    filters: Optional[Dict[str, Any]] = None,
    search: Optional[str] = None,
    page: int = DEFAULT_PAGE,
    limit: Limit = DEFAULT_LIMIT,
    sort_by: str = DEFAULT_SORT_BY,
    sort_order: str = DEFAULT_SORT_ORDER,
) -> Dict[str, Any]:
    """Service level pagination over a whole model.

    ``search`` matches ``title`` or ``description`` case-insensitively where the
    model has those columns. ``limit="all"`` returns every matching row.

    Returns:
        ``{"items", "page", "limit", "totalItems", "totalPages"}``
    """
    stmt = select(model)
    stmt = QueryBuilder.apply_filters(stmt, model, filters or {})
    if search:
        columns = [QueryBuilder.column(model, name) for name in ("title", "description")]
        columns = [column for column in columns if column is not None]
        if columns:
            stmt = stmt.where(or_(*[column.ilike(f"%{search}%") for column in columns]))

    stmt = QueryBuilder.apply_sort(stmt, model, column_name(sort_by), sort_order)

    if limit == ALL:
        result = await session.execute(stmt)
        items = list(result.scalars().all())
        return {"items": items, "page": 1, "limit": len(items), "totalItems": len(items), "totalPages": 1}

    page_size = min(int(limit), MAX_LIMIT)
    page_number = max(int(page), 1)
    total = await count_rows(session, stmt)
    result = await session.execute(stmt.offset((page_number - 1) * page_size).limit(page_size))
    return {
        "items": list(result.scalars().all()),
        "page": page_number,
        "limit": page_size,
        "totalItems": total,
        "totalPages": math.ceil(total / page_size) if page_size else 0,
    }
