"""Filter, sort and paginate advocate records.

A ``ListingQuery`` is evaluated two ways: ``run_in_memory`` walks a list of
record dicts, and ``build_count_sql`` / ``build_select_sql`` render the same
query as MySQL with bound parameters. Both must agree on which records match
and in what order, so any change to a predicate here needs its twin changed
as well.
"""

import json
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from validation import (
    DEFAULT_LIMIT,
    DEFAULT_SORT_FIELD,
    MAX_YEARS,
    canonical_degree,
    validate_array,
    validate_pagination,
    validate_search_query,
    validate_sort_direction,
    validate_sort_field,
    validate_years,
)

DEFAULT_EXPERIENCE_RANGE = (0, MAX_YEARS)

# JSON field -> SQL column
COLUMNS = {
    'id': 'id',
    'firstName': 'first_name',
    'lastName': 'last_name',
    'city': 'city',
    'degree': 'degree',
    'specialties': 'specialties',
    'yearsOfExperience': 'years_of_experience',
    'phoneNumber': 'phone_number',
    'createdAt': 'created_at',
}

SEARCH_TEXT_FIELDS = ('firstName', 'lastName', 'city', 'degree')


@dataclass
class ListingQuery:
    search: str = ''
    cities: Tuple[str, ...] = ()
    degrees: Tuple[str, ...] = ()
    specialties: Tuple[str, ...] = ()
    min_experience: int = DEFAULT_EXPERIENCE_RANGE[0]
    max_experience: int = DEFAULT_EXPERIENCE_RANGE[1]
    sort_field: str = DEFAULT_SORT_FIELD
    sort_direction: str = 'asc'
    page: int = 1
    # None means every matching record (used by export)
    limit: Optional[int] = DEFAULT_LIMIT

    def __post_init__(self):
        self.cities = tuple(self.cities)
        self.degrees = tuple(self.degrees)
        self.specialties = tuple(self.specialties)
        self.sort_field = validate_sort_field(self.sort_field)
        self.sort_direction = validate_sort_direction(self.sort_direction)

    @property
    def offset(self):
        if self.limit is None:
            return 0
        return (self.page - 1) * self.limit

    def unpaginated(self):
        return ListingQuery(
            search=self.search,
            cities=self.cities,
            degrees=self.degrees,
            specialties=self.specialties,
            min_experience=self.min_experience,
            max_experience=self.max_experience,
            sort_field=self.sort_field,
            sort_direction=self.sort_direction,
            page=1,
            limit=None,
        )


@dataclass
class ListingPage:
    data: list
    total: int
    page: int
    limit: Optional[int]

    def pagination(self):
        return pagination_info(self.page, self.limit or max(self.total, 1), self.total)

    def to_dict(self):
        return {'data': self.data, 'pagination': self.pagination()}


def pagination_info(page, limit, total):
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': math.ceil(total / limit) if limit else 0,
    }


# In-memory evaluation

def matches_search(record, term):
    if not term:
        return True
    needle = term.lower()
    for name in SEARCH_TEXT_FIELDS:
        if needle in str(record.get(name, '')).lower():
            return True
    if needle in str(record.get('yearsOfExperience', '')):
        return True
    return any(needle in specialty.lower() for specialty in record.get('specialties') or [])


def matches_filters(record, query):
    if not matches_search(record, query.search):
        return False
    if query.cities and record.get('city') not in query.cities:
        return False
    if query.degrees and record.get('degree') not in query.degrees:
        return False
    if query.specialties and not set(record.get('specialties') or []) & set(query.specialties):
        return False
    years = record.get('yearsOfExperience', 0)
    return query.min_experience <= years <= query.max_experience


def sort_key(field_name):
    if field_name == 'yearsOfExperience':
        return lambda record: record.get(field_name, 0)
    return lambda record: str(record.get(field_name, '')).casefold()


def sort_records(records, field_name, direction='asc'):
    """Stable sort; equal keys keep their input order in both directions"""
    field_name = validate_sort_field(field_name)
    return sorted(records, key=sort_key(field_name), reverse=(direction == 'desc'))


def paginate(records, page, limit):
    if limit is None:
        return list(records)
    start = (page - 1) * limit
    return list(records[start:start + limit])


def run_in_memory(records, query):
    matched = [record for record in records if matches_filters(record, query)]
    ordered = sort_records(matched, query.sort_field, query.sort_direction)
    return ListingPage(
        data=paginate(ordered, query.page, query.limit),
        total=len(matched),
        page=query.page,
        limit=query.limit,
    )


def toggle_sort_direction(direction):
    return 'desc' if direction == 'asc' else 'asc'


def collect_filter_options(records):
    """Distinct values for the multi-select filters and the experience bounds"""
    years = [record.get('yearsOfExperience', 0) for record in records]
    specialties = set()
    for record in records:
        specialties.update(record.get('specialties') or [])
    return {
        'cities': sorted({record['city'] for record in records}, key=str.casefold),
        'degrees': sorted({record['degree'] for record in records}, key=str.casefold),
        'specialties': sorted(specialties, key=str.casefold),
        'experience': {
            'min': min(years) if years else DEFAULT_EXPERIENCE_RANGE[0],
            'max': max(years) if years else DEFAULT_EXPERIENCE_RANGE[1],
        },
    }


# SQL translation (MySQL 8, mysql.connector paramstyle)

# Filters compare bytes like the in-memory path; ORDER BY keeps the
# column collation, whose case-insensitive order matches the casefold sort key
BINARY_COLLATION = "COLLATE utf8mb4_bin"


def escape_like(term):
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _placeholders(values):
    return ', '.join(['%s'] * len(values))


def build_where_clause(query):
    clauses = []
    params = []

    if query.search:
        pattern = f"%{escape_like(query.search.lower())}%"
        text_matches = [f"LOWER({COLUMNS[name]}) {BINARY_COLLATION} LIKE %s" for name in SEARCH_TEXT_FIELDS]
        text_matches.append("CAST(years_of_experience AS CHAR) LIKE %s")
        text_matches.append(
            "EXISTS (SELECT 1 FROM JSON_TABLE(specialties, '$[*]' "
            "COLUMNS (specialty VARCHAR(255) CHARACTER SET utf8mb4 PATH '$')) AS jt "
            f"WHERE LOWER(jt.specialty) {BINARY_COLLATION} LIKE %s)"
        )
        clauses.append("(" + " OR ".join(text_matches) + ")")
        params.extend([pattern] * len(text_matches))

    if query.cities:
        clauses.append(f"city {BINARY_COLLATION} IN ({_placeholders(query.cities)})")
        params.extend(query.cities)

    if query.degrees:
        clauses.append(f"degree {BINARY_COLLATION} IN ({_placeholders(query.degrees)})")
        params.extend(query.degrees)

    if query.specialties:
        clauses.append("JSON_OVERLAPS(specialties, CAST(%s AS JSON))")
        params.append(json.dumps(list(query.specialties)))

    clauses.append("years_of_experience BETWEEN %s AND %s")
    params.extend([query.min_experience, query.max_experience])

    return " WHERE " + " AND ".join(clauses), params


def build_order_clause(query):
    column = COLUMNS[validate_sort_field(query.sort_field)]
    direction = 'DESC' if query.sort_direction == 'desc' else 'ASC'
    # id keeps ties in insertion order, matching the stable in-memory sort
    return f" ORDER BY {column} {direction}, id ASC"


def build_count_sql(query):
    where_sql, params = build_where_clause(query)
    return "SELECT COUNT(*) AS total FROM advocates" + where_sql, params


def build_select_sql(query):
    where_sql, params = build_where_clause(query)
    columns = ', '.join(COLUMNS.values())
    sql = f"SELECT {columns} FROM advocates" + where_sql + build_order_clause(query)
    if query.limit is not None:
        sql += " LIMIT %s OFFSET %s"
        params = params + [query.limit, query.offset]
    return sql, params


def listing_query_from_params(args, paginate=True):
    """Build a ListingQuery from request parameters, clamping instead of rejecting"""
    page, limit = validate_pagination(args.get('page'), args.get('limit'))
    min_experience = validate_years(args.get('minExperience'))
    max_experience = validate_years(args.get('maxExperience'))
    return ListingQuery(
        search=validate_search_query(args.get('search')),
        cities=validate_array(args.get('cities')),
        degrees=[canonical_degree(d) for d in validate_array(args.get('degrees'))],
        specialties=validate_array(args.get('specialties')),
        min_experience=DEFAULT_EXPERIENCE_RANGE[0] if min_experience is None else min_experience,
        max_experience=DEFAULT_EXPERIENCE_RANGE[1] if max_experience is None else max_experience,
        sort_field=args.get('sortField'),
        sort_direction=args.get('sortDirection'),
        page=page if paginate else 1,
        limit=limit if paginate else None,
    )
