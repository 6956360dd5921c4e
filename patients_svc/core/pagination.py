"""
Pagination and search query construction for the patient list.

Builds a bounded, parameterized window query plus the matching count
query. Nothing here touches the database; PatientRepository executes the
statements.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# Largest value SQLite can bind as an INTEGER
SQLITE_MAX_INTEGER = 2**63 - 1

# Unicode-aware upper-casing registered on every pooled connection
FOLD_FUNCTION = "UNI_UPPER"

PATIENT_COLUMNS = (
    "id, first_name, last_name, email, phone, birth_date, created_at, updated_at"
)

SEARCH_CONDITION = (
    f" WHERE {FOLD_FUNCTION}(first_name) LIKE :search ESCAPE '\\'"
    f" OR {FOLD_FUNCTION}(last_name) LIKE :search ESCAPE '\\'"
)


def sanitize_search_term(search: Any) -> str:
    """
    Escape SQL LIKE metacharacters so they match literally.

    Backslash is the escape character; queries using the result must
    declare ``ESCAPE '\\'``.
    """
    if not search or not isinstance(search, str):
        return ""
    return (
        search
        .replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


def fold_case(value: Any) -> Any:
    """Upper-case text with full Unicode rules ('é' -> 'É'); other values pass through."""
    return value.upper() if isinstance(value, str) else value


@dataclass(frozen=True)
class PageRequest:
    """A requested page: 1-based page number, page size and optional search text."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    search: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def search_pattern(self) -> Optional[str]:
        """LIKE pattern for the search text, or None when there is nothing to search."""
        if not self.search or not self.search.strip():
            return None
        return f"%{fold_case(sanitize_search_term(self.search.strip()))}%"


@dataclass(frozen=True)
class PageQuery:
    """Window and count statements sharing the same filter."""

    sql: str
    count_sql: str
    params: Dict[str, Any] = field(default_factory=dict)
    count_params: Dict[str, Any] = field(default_factory=dict)


def _to_int(value: Any, default: int) -> int:
    """Parse a query-string value, falling back to ``default`` when absent or non-numeric."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_page_params(page: Any = None, limit: Any = None) -> Tuple[int, int]:
    """
    Turn raw ``page``/``limit`` query values into integers.

    Missing or non-numeric values fall back to page 1 and limit 10. Values
    that parse but are out of range (``page=0``, ``limit=500``) are returned
    as-is so the caller can reject them.
    """
    return _to_int(page, DEFAULT_PAGE), _to_int(limit, DEFAULT_LIMIT)


def build_page_query(request: PageRequest) -> PageQuery:
    """
    Build the paginated select and its count query.

    Rows are ordered newest first; ``id`` breaks ties between rows created
    within the same millisecond.
    """
    sql = f"SELECT {PATIENT_COLUMNS} FROM patients"
    count_sql = "SELECT COUNT(*) AS total FROM patients"
    params: Dict[str, Any] = {}
    count_params: Dict[str, Any] = {}

    pattern = request.search_pattern
    if pattern is not None:
        sql += SEARCH_CONDITION
        count_sql += SEARCH_CONDITION
        params["search"] = pattern
        count_params["search"] = pattern

    sql += " ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset"
    params["limit"] = request.limit
    # Pages past the bindable range are simply empty
    params["offset"] = min(request.offset, SQLITE_MAX_INTEGER)

    return PageQuery(sql=sql, count_sql=count_sql, params=params, count_params=count_params)


def total_pages(total_records: int, limit: int) -> int:
    """ceil(total / limit); zero records means zero pages."""
    return math.ceil(total_records / limit)


def build_pagination(request: PageRequest, total_records: int) -> Dict[str, int]:
    """Build the pagination descriptor returned alongside a page of patients."""
    return {
        "currentPage": request.page,
        "totalPages": total_pages(total_records, request.limit),
        "totalRecords": total_records,
        "limit": request.limit,
    }
