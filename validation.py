import re

from seed_data import DEGREES

MAX_PAGE = 10000
MAX_LIMIT = 100
DEFAULT_LIMIT = 10
MAX_SEARCH_LENGTH = 200
MAX_FILTER_ITEMS = 50
MAX_YEARS = 100

SORT_FIELDS = ('firstName', 'lastName', 'city', 'degree', 'yearsOfExperience')
DEFAULT_SORT_FIELD = 'firstName'

_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')
_EVENT_HANDLER = re.compile(r'on\w+=', re.IGNORECASE)
_JS_PROTOCOL = re.compile(r'javascript:', re.IGNORECASE)


def parse_int(value, default=None):
    """Read the leading integer of a query-string value, or return default"""
    if value is None:
        return default
    match = _LEADING_INT.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def clamp(value, low, high):
    return max(low, min(value, high))


def sanitize_string(text):
    """Strip HTML brackets, javascript: and inline event handlers"""
    if not text:
        return ""
    text = re.sub(r'[<>]', '', text)
    text = _JS_PROTOCOL.sub('', text)
    text = _EVENT_HANDLER.sub('', text)
    return text.strip()


def validate_search_query(query):
    if not query:
        return ""
    return sanitize_string(query[:MAX_SEARCH_LENGTH])


def validate_pagination(page=None, limit=None):
    page = parse_int(page, 1)
    limit = parse_int(limit, DEFAULT_LIMIT)
    return clamp(page, 1, MAX_PAGE), clamp(limit, 1, MAX_LIMIT)


def validate_array(value, max_items=MAX_FILTER_ITEMS):
    """Split a comma-separated value into sanitized, non-empty items"""
    if not value:
        return []
    items = [sanitize_string(item) for item in value.split(',')]
    return [item for item in items if item][:max_items]


def canonical_degree(degree):
    """Map md/phd/msw in any case to the stored spelling; pass others through"""
    for known in DEGREES:
        if degree.upper() == known.upper():
            return known
    return degree


def validate_years(value):
    years = parse_int(value)
    if years is None:
        return None
    return clamp(years, 0, MAX_YEARS)


def validate_sort_field(field):
    return field if field in SORT_FIELDS else DEFAULT_SORT_FIELD


def validate_sort_direction(direction):
    return 'desc' if direction == 'desc' else 'asc'
