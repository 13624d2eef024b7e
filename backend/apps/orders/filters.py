# apps/orders/filters.py
import django_filters

from .models import Order, OrderStatus


class StoreOrderFilter(django_filters.FilterSet):
    """
    Optional query filters on the store's order list,
    e.g. ?status=PREPARING&created_after=2026-02-13
    """
    status = django_filters.MultipleChoiceFilter(choices=OrderStatus.CHOICES)
    created_after = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    created_before = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["status"]
