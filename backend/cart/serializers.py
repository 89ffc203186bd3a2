"""
Validation of the cart blob kept in the customer's session.

The blob is client-controlled data, so it is validated like any other
request payload before the cart is rebuilt from it.
"""

from rest_framework import serializers


class StoredCartItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    unitPrice = serializers.DecimalField(
        source="unit_price", max_digits=13, decimal_places=3, min_value=0
    )
    quantity = serializers.IntegerField(min_value=1)
    restaurantId = serializers.CharField(source="restaurant_id")


class StoredCartSerializer(serializers.Serializer):
    items = StoredCartItemSerializer(many=True)
    restaurantId = serializers.CharField(source="restaurant_id", allow_null=True, required=False)

    def validate(self, attrs):
        items = attrs.get("items", [])
        restaurant_id = attrs.get("restaurant_id")

        if not items:
            if restaurant_id is not None:
                raise serializers.ValidationError("Empty cart cannot have a restaurant.")
            return attrs

        if restaurant_id is None:
            raise serializers.ValidationError("Cart with items must have a restaurant.")

        foreign = [item["id"] for item in items if item["restaurant_id"] != restaurant_id]
        if foreign:
            raise serializers.ValidationError(
                f"Items {foreign} do not belong to restaurant {restaurant_id}."
            )
        return attrs
