"""Unit tests for query string pagination, filtering and sorting helpers."""

import pytest
from starlette.requests import Request

from tourbnt.core.errors import ApiError
from tourbnt.core.pagination import (
    ALL,
    MAX_LIMIT,
    FilterSort,
    PaginationParams,
    calculate_pagination_meta,
    column_name,
    filter_sort,
    pagination_params,
    parse_int,
    parse_pagination_params,
    validate_pagination_params,
)


def _request(query: str) -> Request:
    return Request({"type": "http", "method": "GET", "path": "/", "query_string": query.encode(), "headers": []})


class TestParseInt:
    @pytest.mark.parametrize(
        "value,expected",
        [("12", 12), ("12abc", 12), (" -3", -3), ("+4", 4), (7, 7), ("abc", None), (None, None), (True, None)],
    )
    def test_values(self, value, expected):
        assert parse_int(value) == expected


@pytest.mark.parametrize(
    "field,column",
    [("createdAt", "created_at"), ("totalAmount", "total_amount"), ("name", "name"), ("updated_at", "updated_at")],
)
def test_column_name(field, column):
    assert column_name(field) == column


class TestParsePaginationParams:
    def test_defaults(self):
        assert parse_pagination_params({}) == PaginationParams(1, 10, 0, "createdAt", "desc")

    def test_values_and_skip(self):
        params = parse_pagination_params({"page": "3", "limit": "20", "sortBy": "name", "sortOrder": "asc"})
        assert (params.page, params.limit, params.skip) == (3, 20, 40)
        assert (params.sort_by, params.sort_order) == ("name", "asc")

    def test_invalid_values_fall_back(self):
        params = parse_pagination_params({"page": "-2", "limit": "zero", "sortOrder": "sideways"})
        assert (params.page, params.limit, params.sort_order) == (1, 10, "desc")

    def test_limit_is_capped(self):
        assert parse_pagination_params({"limit": "500"}).limit == MAX_LIMIT

    def test_all(self):
        params = parse_pagination_params({"limit": "ALL", "page": "4"})
        assert params.limit == ALL
        assert params.skip == 0
        assert params.fetch_all


class TestValidatePaginationParams:
    def test_valid(self):
        assert validate_pagination_params(1, 10) == []
        assert validate_pagination_params(2, ALL) == []

    def test_reports_every_problem(self):
        errors = validate_pagination_params(0, 0)
        assert errors == ["Page number must be greater than 0", "Limit must be greater than 0"]

    def test_limit_too_large(self):
        assert validate_pagination_params(1, 101) == ['Limit cannot exceed 100. Use "all" to fetch all items.']


class TestCalculatePaginationMeta:
    def test_pages_round_up(self):
        assert calculate_pagination_meta(21, 2, 10) == {"page": 2, "limit": 10, "totalItems": 21, "totalPages": 3}

    def test_all(self):
        assert calculate_pagination_meta(7, 3, ALL) == {"page": 1, "limit": 7, "totalItems": 7, "totalPages": 1}
        assert calculate_pagination_meta(0, 1, ALL)["totalPages"] == 0


class TestPaginationParamsDependency:
    async def test_zero_page_uses_default(self):
        params = await pagination_params(_request("page=0&limit=0"))
        assert (params.page, params.limit) == (1, 10)

    async def test_negative_page(self):
        with pytest.raises(ApiError) as exc_info:
            await pagination_params(_request("page=-1"))
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "INVALID_PAGINATION"
        assert exc_info.value.errors == {"page": "Page must be >= 1"}

    @pytest.mark.parametrize("limit,message", [("-5", "Limit must be >= 1"), ("101", "Limit must be <= 100")])
    async def test_limit_bounds(self, limit, message):
        with pytest.raises(ApiError) as exc_info:
            await pagination_params(_request(f"limit={limit}"))
        assert exc_info.value.errors == {"limit": message}

    async def test_all_is_accepted(self):
        params = await pagination_params(_request("limit=all&sortBy=title&sortOrder=asc"))
        assert params.fetch_all
        assert (params.sort_by, params.sort_order) == ("title", "asc")


class TestFilterSort:
    async def test_whitelisted_filters_only(self):
        dependency = filter_sort(["status", "country"], ["name"])
        result = await dependency(_request("status=pending&role=admin&country=&search=nile"))
        assert result.filters == {"status": "pending"}
        assert result.search == "nile"
        assert result.sort_field is None

    async def test_order_defaults_to_ascending(self):
        dependency = filter_sort([], ["name", "createdAt"])
        assert (await dependency(_request("sort=name"))).sort_order == "asc"
        assert (await dependency(_request("sort=name&order=DESC"))).sort_order == "desc"
        assert (await dependency(_request("sort=name&order=random"))).sort_order == "asc"

    async def test_unknown_sort_field(self):
        dependency = filter_sort([], ["name"])
        with pytest.raises(ApiError) as exc_info:
            await dependency(_request("sort=password"))
        error = exc_info.value
        assert error.code == "INVALID_SORT_FIELD"
        assert error.message == "Invalid sort field: password"
        assert error.errors == {"allowedFields": ["name"], "providedField": "password"}

    def test_resolve_prefers_sort_over_sort_by(self):
        params = PaginationParams(sort_by="updatedAt", sort_order="asc")
        assert FilterSort(sort_field="totalAmount", sort_order="desc").resolve(params) == ("total_amount", "desc")
        assert FilterSort().resolve(params) == ("updated_at", "asc")
