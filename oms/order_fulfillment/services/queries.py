"""
Pagination and filtering helpers shared by the read paths.
"""

import math
from datetime import date, datetime
from typing import Any, Dict

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import QuerySet

from ..conf import oms_settings
from ..exceptions import ValidationException


def paginate(queryset: QuerySet, page=1, limit=None) -> Dict[str, Any]:
    """
    Slice a queryset into one page.

    Page 0 reads as the first page and limit 0 as the default page size,
    whether they arrive as integers or as query-string text.

    Returns:
        Dict with results, total, page, limit and pages (ceil(total / limit))
    """
    try:
        page = int(page) if page not in (None, '') else 1
        limit = int(limit) if limit not in (None, '') else oms_settings.DEFAULT_PAGE_SIZE
    except (TypeError, ValueError):
        raise ValidationException("Page and limit must be integers", {"page": page, "limit": limit})

    if page < 0 or limit < 0:
        raise ValidationException("Page and limit must not be negative", {"page": page, "limit": limit})
    page = max(page, 1)
    limit = min(limit or oms_settings.DEFAULT_PAGE_SIZE, oms_settings.MAX_PAGE_SIZE)

    total = queryset.count()
    offset = (page - 1) * limit

    return {
        'results': list(queryset[offset:offset + limit]),
        'total': total,
        'page': page,
        'limit': limit,
        'pages': math.ceil(total / limit),
    }


def filter_date_range(queryset: QuerySet, field: str, start=None, end=None) -> QuerySet:
    """Restrict ``field`` to [start, end]; plain dates compare against the calendar day."""
    if start:
        if isinstance(start, date) and not isinstance(start, datetime):
            queryset = queryset.filter(**{f'{field}__date__gte': start})
        else:
            queryset = queryset.filter(**{f'{field}__gte': start})
    if end:
        if isinstance(end, date) and not isinstance(end, datetime):
            queryset = queryset.filter(**{f'{field}__date__lte': end})
        else:
            queryset = queryset.filter(**{f'{field}__lte': end})
    return queryset


def get_or_none(queryset: QuerySet, **lookup):
    """Fetch one row, treating malformed identifiers the same as missing rows."""
    try:
        return queryset.get(**lookup)
    except (queryset.model.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        return None
