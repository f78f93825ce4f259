import django_filters
from django.db.models import Q

from modules.orders.constants import DeliveryMethod, FulfillmentStatus, PaymentStatus
from modules.orders.models import Order


class AdminOrderFilter(django_filters.FilterSet):
    payment_status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    fulfillment_status = django_filters.ChoiceFilter(choices=FulfillmentStatus.choices)
    delivery_method = django_filters.ChoiceFilter(choices=DeliveryMethod.choices)
    q = django_filters.CharFilter(method="search")

    class Meta:
        model = Order
        fields = ["payment_status", "fulfillment_status", "delivery_method", "q"]

    def search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value)
            | Q(owner__email__icontains=value)
            | Q(owner__account__name__icontains=value)
            | Q(address_snapshot__postcode__icontains=value)
        )
