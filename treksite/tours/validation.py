"""
Display checks for tour records and region grouping helpers
"""

REQUIRED_FOR_DISPLAY = ['name', 'url_slug', 'status', 'price']

PUBLISHED_RECOMMENDED = [
    ('description', 'Published tours should include a description'),
    ('region', 'Published tours should include a region'),
    ('country', 'Published tours should include a country'),
]

LIST_FIELDS = [
    ('itineraries', 'Itineraries should be an array'),
    ('tour_highlights', 'Highlights should be an array'),
    ('seasonal_prices', 'Seasonal prices should be an array'),
    ('group_discounts', 'Group discounts should be an array'),
]


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def validate_tour_for_display(tour):
    """
    Check that a tour record can be rendered on the public site.

    Returns:
        dict with validation results:
        {
            'is_valid': bool,
            'missing_fields': list of required fields that are empty,
            'warnings': list of non-blocking issues
        }
    """
    result = {
        'is_valid': True,
        'missing_fields': [],
        'warnings': [],
    }

    if not tour:
        result['is_valid'] = False
        result['missing_fields'].append('tour')
        return result

    for field in REQUIRED_FOR_DISPLAY:
        if _is_blank(tour.get(field)):
            result['missing_fields'].append(field)

    if tour.get('status') == 'Published':
        for field, warning in PUBLISHED_RECOMMENDED:
            value = tour.get(field)
            if not value or _is_blank(value):
                result['warnings'].append(warning)

    for field, warning in LIST_FIELDS:
        if not isinstance(tour.get(field), list):
            result['warnings'].append(warning)

    if result['missing_fields']:
        result['is_valid'] = False

    return result


def compute_region_counts(rows):
    """Count tours per region name; rows without a region are ignored"""
    counts = {}
    for row in rows:
        key = (row.get('region') or '').strip()
        if not key:
            continue
        counts[key] = counts.get(key, 0) + 1
    return counts


def sort_region_counts(counts, sort_by='name'):
    """
    Turn {region: count} into a list of {'region', 'count'} dicts.
    'name' sorts case-insensitively by region, 'count' sorts largest first.
    """
    items = [{'region': region, 'count': count} for region, count in counts.items()]
    if sort_by == 'count':
        return sorted(items, key=lambda item: (-item['count'], item['region'].casefold()))
    return sorted(items, key=lambda item: item['region'].casefold())
