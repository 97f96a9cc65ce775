import django_filters

from modules.adoptions.models import AdoptionCase


class AdoptionCaseFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    listing = django_filters.UUIDFilter(field_name="listing_id")
    submitted_after = django_filters.DateFilter(
        field_name="submitted_at", lookup_expr="gte"
    )
    submitted_before = django_filters.DateFilter(
        field_name="submitted_at", lookup_expr="lte"
    )

    class Meta:
        model = AdoptionCase
        fields = ["status", "listing", "submitted_after", "submitted_before"]
