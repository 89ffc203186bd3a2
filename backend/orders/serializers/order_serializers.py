from rest_framework import serializers


class OrderLineSerializer(serializers.Serializer):
    """Frozen snapshot of a menu item at checkout."""

    menu_item_id = serializers.CharField()
    name = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class OrderDocumentSerializer(serializers.Serializer):
    """
    Read representation of an order document.

    Works for both the global ``Order`` and the per-customer ``CustomerOrder``
    copy; ``id`` is the order id in either case, so the output of the two
    copies of one order is identical when they agree.
    """

    id = serializers.UUIDField(source="document_id", read_only=True)
    customer_id = serializers.CharField(read_only=True)
    restaurant_id = serializers.CharField(read_only=True)
    items = OrderLineSerializer(many=True, read_only=True)

    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    coupon_code = serializers.CharField(allow_null=True, read_only=True)
    coupon_discount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    loyalty_points_applied = serializers.IntegerField(read_only=True)
    loyalty_discount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    delivery_fee = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    tax = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    total_amount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    status = serializers.CharField(read_only=True)
    delivery_address = serializers.CharField(read_only=True)
    customer_name = serializers.CharField(read_only=True)
    customer_phone = serializers.CharField(read_only=True)
    payment_method = serializers.CharField(read_only=True)

    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)

    donated = serializers.BooleanField(read_only=True)
    donation_target_id = serializers.CharField(allow_null=True, read_only=True)


def serialize_order(order) -> dict:
    """Plain-dict document for observers and the channel layer."""
    data = OrderDocumentSerializer(order).data
    document = dict(data)
    document["items"] = [dict(line) for line in data["items"]]
    return document
