import html

import bleach
from rest_framework import serializers

from directory.services.filter_specs import ENTITY_TYPES


def _clean_query(v):
    # strip markup but keep the literal characters the ORM will parameterize
    return html.unescape(bleach.clean((v or '').strip(), tags=[], strip=True))


class SearchQuerySerializer(serializers.Serializer):
    """Typed view of the search query string.

    Filter, sort and paging values stay free-form: keys or sort names an
    entity type does not support are dropped later, and unusable
    ``page``/``limit`` values fall back to their defaults.
    """
    type = serializers.ChoiceField(choices=ENTITY_TYPES, required=False, default='doctor')
    query = serializers.CharField(max_length=128, required=False, allow_blank=True)
    specialization = serializers.CharField(max_length=128, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    minRating = serializers.CharField(max_length=16, required=False, allow_blank=True)
    gender = serializers.CharField(max_length=16, required=False, allow_blank=True)
    experience = serializers.CharField(max_length=32, required=False, allow_blank=True)
    sortBy = serializers.CharField(max_length=32, required=False, allow_blank=True)
    page = serializers.CharField(max_length=16, required=False, allow_blank=True)
    limit = serializers.CharField(max_length=16, required=False, allow_blank=True)

    def validate_query(self, v):
        return _clean_query(v)


class LiveSearchQuerySerializer(serializers.Serializer):
    query = serializers.CharField(max_length=128, required=False, allow_blank=True, trim_whitespace=False)
    type = serializers.ChoiceField(choices=ENTITY_TYPES, required=False, default='doctor')
    specialization = serializers.CharField(max_length=128, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    limit = serializers.CharField(max_length=16, required=False, allow_blank=True)

    def validate_query(self, v):
        return _clean_query(v)


class TopDoctorsQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=50, required=False, default=6)
