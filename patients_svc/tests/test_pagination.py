"""
Tests for pagination and search query construction.
"""
from core.pagination import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    SQLITE_MAX_INTEGER,
    PageRequest,
    build_page_query,
    build_pagination,
    parse_page_params,
    fold_case,
    sanitize_search_term,
)


class TestParsePageParams:
    """Raw query-string values to integers."""

    def test_defaults_when_missing(self):
        assert parse_page_params(None, None) == (DEFAULT_PAGE, DEFAULT_LIMIT)

    def test_numeric_strings(self):
        assert parse_page_params("3", "25") == (3, 25)

    def test_non_numeric_falls_back_to_defaults(self):
        assert parse_page_params("abc", "1.5") == (1, 10)

    def test_out_of_range_values_are_kept_for_the_caller(self):
        assert parse_page_params("0", "500") == (0, 500)
        assert parse_page_params("-2", "0") == (-2, 0)


class TestSanitizeSearchTerm:

    def test_escapes_like_metacharacters(self):
        assert sanitize_search_term("50%_off") == "50\\%\\_off"

    def test_escapes_backslash_first(self):
        assert sanitize_search_term("a\\b") == "a\\\\b"

    def test_non_text_is_empty(self):
        assert sanitize_search_term(None) == ""
        assert sanitize_search_term(12) == ""


class TestBuildPageQuery:

    def test_without_search(self):
        query = build_page_query(PageRequest(page=3, limit=20))
        assert "WHERE" not in query.sql
        assert "WHERE" not in query.count_sql
        assert query.sql.endswith("ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset")
        assert query.params == {"limit": 20, "offset": 40}
        assert query.count_params == {}

    def test_with_search_filters_both_queries(self):
        query = build_page_query(PageRequest(page=1, limit=10, search="  ju%an "))
        assert "UNI_UPPER(first_name) LIKE :search" in query.sql
        assert "UNI_UPPER(last_name) LIKE :search" in query.count_sql
        assert query.params["search"] == "%JU\\%AN%"
        assert query.count_params == {"search": "%JU\\%AN%"}

    def test_blank_search_is_ignored(self):
        query = build_page_query(PageRequest(search="   "))
        assert "search" not in query.params
        assert "WHERE" not in query.sql

    def test_accented_search_is_upper_cased(self):
        query = build_page_query(PageRequest(search="pérez"))
        assert query.params["search"] == "%PÉREZ%"

    def test_offset_is_capped_at_sqlite_integer_range(self):
        query = build_page_query(PageRequest(page=10**20, limit=10))
        assert query.params["offset"] == SQLITE_MAX_INTEGER


class TestFoldCase:

    def test_upper_cases_unicode_letters(self):
        assert fold_case("josé@test.com") == "JOSÉ@TEST.COM"
        assert fold_case("Íñigo") == "ÍÑIGO"

    def test_non_text_passes_through(self):
        assert fold_case(None) is None
        assert fold_case(5) == 5


class TestBuildPagination:

    def test_total_pages_is_ceiling(self):
        assert build_pagination(PageRequest(page=1, limit=10), 21) == {
            "currentPage": 1,
            "totalPages": 3,
            "totalRecords": 21,
            "limit": 10,
        }

    def test_exact_multiple(self):
        assert build_pagination(PageRequest(page=2, limit=5), 10)["totalPages"] == 2

    def test_no_records_means_zero_pages(self):
        assert build_pagination(PageRequest(), 0)["totalPages"] == 0
