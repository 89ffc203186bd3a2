from rest_framework import serializers


class DeliveryInfoSerializer(serializers.Serializer):
    address = serializers.CharField(max_length=1000)
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    customer_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")


class OrderDetailsSerializer(serializers.Serializer):
    """Values accepted by OrderStatusService.update_order_details; use with partial=True."""

    donated = serializers.BooleanField()
    donation_target_id = serializers.CharField(max_length=128, allow_null=True)
    delivery_address = serializers.CharField(max_length=1000)
    customer_name = serializers.CharField(max_length=255, allow_blank=True)
    customer_phone = serializers.CharField(max_length=32, allow_blank=True)
    payment_method = serializers.CharField(max_length=50)
