import django_filters

from modules.listings.models import Listing


class ListingFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    category = django_filters.CharFilter(field_name="category", lookup_expr="iexact")
    gender = django_filters.CharFilter(field_name="gender", lookup_expr="iexact")
    shelter = django_filters.UUIDFilter(field_name="shelter_id")
    breed = django_filters.CharFilter(field_name="breed", lookup_expr="icontains")
    max_age = django_filters.NumberFilter(field_name="age", lookup_expr="lte")

    class Meta:
        model = Listing
        fields = ["status", "category", "gender", "shelter", "breed", "max_age"]
