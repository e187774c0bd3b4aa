"""List query parameters shared by the generic collection routes."""
from rest_framework import serializers

MAX_LIMIT = 100
RESERVED_PARAMS = ('page', 'limit', 'search', 'sort', 'order', 'format')


class ListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, default=10)
    search = serializers.CharField(required=False, allow_blank=True, default='')
    sort = serializers.RegexField(r'^[A-Za-z_][\w]*$', required=False, default='created_at')
    order = serializers.ChoiceField(choices=['asc', 'desc'], required=False, default='desc')

    def validate_limit(self, v):
        return min(v, MAX_LIMIT)


def field_filters(query_params):
    """Remaining query parameters, used as equality filters."""
    return {
        key: query_params.get(key)
        for key in query_params.keys()
        if key not in RESERVED_PARAMS and query_params.get(key) not in (None, '')
    }


def _sort_key(field):
    def key(record):
        value = record.get(field)
        # missing values sort first ascending, numbers before strings
        if value is None or value == '':
            return (0, 0, '')
        if isinstance(value, bool):
            return (1, int(value), '')
        if isinstance(value, (int, float)):
            return (1, value, '')
        return (2, 0, str(value).lower())
    return key


def apply_query(records, search_fields, search='', sort='created_at', order='desc', filters=None):
    needle = (search or '').strip().lower()
    out = []
    for record in records:
        if filters and not all(_equals(record.get(k), v) for k, v in filters.items()):
            continue
        if needle and not any(needle in str(record.get(f) or '').lower() for f in search_fields):
            continue
        out.append(record)
    out.sort(key=_sort_key(sort), reverse=(order == 'desc'))
    return out


def _equals(value, expected):
    if isinstance(value, bool):
        return str(value).lower() == str(expected).lower()
    return value is not None and str(value) == str(expected)
