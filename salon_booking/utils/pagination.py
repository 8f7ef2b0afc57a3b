"""Query-string helpers shared by the listing and statistics endpoints"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from salon_booking.errors import ValidationError

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
DEFAULT_PAGE = 1

SORT_ORDERS = ('asc', 'desc')


@dataclass(frozen=True)
class PageRequest:
    page: int = DEFAULT_PAGE
    count: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        validate_pagination(self.page, self.count)


@dataclass(frozen=True)
class SortSpec:
    field: str
    order: str = 'desc'


DEFAULT_SORT = SortSpec('createdAt', 'desc')


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days; either end may be open"""
    start: date = None
    end: date = None

    def __post_init__(self):
        if self.start and self.end and self.start > self.end:
            raise ValidationError.for_fields({'startDate': ['Start date must not be after end date']})

    def lower_bound(self):
        if self.start is None:
            return None
        return datetime.combine(self.start, time.min)

    def upper_bound(self):
        """Exclusive upper bound: midnight after the end day"""
        if self.end is None:
            return None
        return datetime.combine(self.end + timedelta(days=1), time.min)

    def contains(self, moment):
        lower, upper = self.lower_bound(), self.upper_bound()
        if lower is not None and moment < lower:
            return False
        if upper is not None and moment >= upper:
            return False
        return True


def validate_pagination(page, count):
    if page < 1:
        raise ValidationError.for_fields({'page': [f'Page number must be greater than 0, received: {page}']})
    if count < 1:
        raise ValidationError.for_fields({'count': [f'Count must be greater than 0, received: {count}']})
    if count > MAX_PAGE_SIZE:
        raise ValidationError.for_fields({'count': [f'Count cannot exceed {MAX_PAGE_SIZE}, received: {count}']})


def _parse_int(args, name, default):
    raw = args.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError.for_fields({name: [f'{name} must be an integer']})


def parse_pagination(args):
    """Read ?page=&count= into a validated PageRequest; bad values are rejected, never clamped"""
    return PageRequest(
        page=_parse_int(args, 'page', DEFAULT_PAGE),
        count=_parse_int(args, 'count', DEFAULT_PAGE_SIZE),
    )


def build_pagination(page):
    """Response metadata for a Flask-SQLAlchemy Pagination"""
    return {
        'total': page.total,
        'page': page.page,
        'count': page.per_page,
        'totalPages': page.pages,
    }


def parse_sort(args, allowed_fields, default=DEFAULT_SORT):
    """Unknown sort fields or orders fall back to the default instead of failing"""
    field = default.field
    order = default.order

    sort_by = args.get('sortBy')
    if sort_by and sort_by in allowed_fields:
        field = sort_by

    sort_order = (args.get('sortOrder') or '').lower()
    if sort_order in SORT_ORDERS:
        order = sort_order

    return SortSpec(field, order)


def parse_date(value, name='date'):
    """Accepts YYYY-MM-DD, MM/DD/YYYY or a full ISO timestamp"""
    value = value.strip()
    try:
        if '/' in value:
            return datetime.strptime(value, '%m/%d/%Y').date()
        if 'T' in value:
            return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError.for_fields({name: [f'Invalid date: {value}']})


def parse_date_range(args, start_key='startDate', end_key='endDate'):
    start = args.get(start_key)
    end = args.get(end_key)
    if not start and not end:
        return None
    return DateRange(
        start=parse_date(start, start_key) if start else None,
        end=parse_date(end, end_key) if end else None,
    )


def parse_list(args, *names):
    """
    Collect a multi-valued filter from repeated and/or comma separated params,
    e.g. ?stylistIds=a,b&stylistId=c. Empty, '*' and 'all' mean no filter.
    """
    values = []
    for name in names:
        for raw in args.getlist(name):
            values.extend(part.strip() for part in raw.split(',') if part.strip())
    values = [v for v in values if v not in ('*', 'all')]
    return values or None
