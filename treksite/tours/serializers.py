from django.utils import timezone
from rest_framework import serializers

DIFFICULTY_CHOICES = ['Easy', 'Moderate', 'Challenging', 'Strenuous']
STATUS_CHOICES = ['Draft', 'Published']
MAX_TOUR_PRICE = 1000000


class TourSerializer(serializers.Serializer):
    """Validates tour payloads from the admin tour editor"""
    name = serializers.CharField(min_length=5, error_messages={'min_length': 'Title must be at least 5 characters'})
    url_slug = serializers.RegexField(
        r'^[a-z0-9-]+$',
        error_messages={'invalid': 'Slug must contain only lowercase letters, numbers, and hyphens'},
    )
    price = serializers.FloatField(min_value=0, error_messages={'min_value': 'Price cannot be negative'})
    currency = serializers.CharField(max_length=3, required=False)
    duration = serializers.IntegerField(
        min_value=1, max_value=365,
        error_messages={
            'min_value': 'Duration must be between 1 and 365 days',
            'max_value': 'Duration must be between 1 and 365 days',
        },
    )
    difficulty = serializers.ChoiceField(choices=DIFFICULTY_CHOICES)
    status = serializers.ChoiceField(choices=STATUS_CHOICES)
    region = serializers.CharField(error_messages={'blank': 'Region is required'})
    country = serializers.CharField(error_messages={'blank': 'Country is required'})
    description = serializers.CharField(required=False, allow_blank=True)
    itineraries = serializers.ListField(child=serializers.DictField(), required=False)
    tour_highlights = serializers.ListField(required=False)
    seasonal_prices = serializers.ListField(child=serializers.DictField(), required=False)
    group_discounts = serializers.ListField(child=serializers.DictField(), required=False)
    faqs = serializers.ListField(child=serializers.DictField(), required=False)
    inclusions = serializers.ListField(child=serializers.CharField(), required=False)
    exclusions = serializers.ListField(child=serializers.CharField(), required=False)

    def validate_price(self, value):
        if value != value or value >= MAX_TOUR_PRICE:
            raise serializers.ValidationError(f'Price must be below {MAX_TOUR_PRICE}')
        return value


class DepartureSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    price = serializers.FloatField(min_value=0)
    capacity = serializers.IntegerField(min_value=1)

    def validate_start_date(self, value):
        if value <= timezone.now().date():
            raise serializers.ValidationError('Start date must be in the future')
        return value

    def validate(self, attrs):
        if attrs['end_date'] < attrs['start_date']:
            raise serializers.ValidationError({'end_date': 'End date must be after start date'})
        return attrs


class RegionSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=3, error_messages={'min_length': 'Region name must be at least 3 characters'})
    description = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=STATUS_CHOICES)
    zoom_level = serializers.IntegerField(min_value=1, max_value=20, required=False)
