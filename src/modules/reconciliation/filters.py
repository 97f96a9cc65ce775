import django_filters

from modules.reconciliation.models import PaymentDeadLetter


class PaymentDeadLetterFilter(django_filters.FilterSet):
    order = django_filters.UUIDFilter(field_name="order_id")
    reason = django_filters.CharFilter(field_name="reason", lookup_expr="iexact")

    class Meta:
        model = PaymentDeadLetter
        fields = ["order", "reason"]
