# apps/orders/serializers.py
from rest_framework import serializers

from . import lifecycle
from .models import Order


def money_field():
    return serializers.DecimalField(max_digits=10, decimal_places=2, coerce_to_string=False)


class PreviewOrderSerializer(serializers.Serializer):
    dropoff_address = serializers.CharField(max_length=255)
    deliver_before = serializers.DateTimeField(required=False, allow_null=True)
    deliver_after = serializers.DateTimeField(required=False, allow_null=True)

    def validate_dropoff_address(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Drop-off address is required")
        return value


class CreateOrderSerializer(PreviewOrderSerializer):
    recipient_name = serializers.CharField(max_length=120)
    recipient_phone = serializers.CharField(max_length=20)
    tag_number = serializers.CharField(max_length=50, required=False, allow_blank=True)

    # Optional delivery instructions
    buzz_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    unit = serializers.CharField(max_length=50, required=False, allow_blank=True)
    note = serializers.CharField(required=False, allow_blank=True)


class QuoteSerializer(serializers.Serializer):
    distance_km = serializers.DecimalField(max_digits=8, decimal_places=2, coerce_to_string=False)
    eta_minutes = serializers.IntegerField()
    driver_price = money_field()
    platform_profit = money_field()
    profit_raw = money_field()
    store_price = money_field()
    rush_fee = money_field()
    rush_applied = serializers.BooleanField()
    total_price = money_field()
    base_price = money_field()
    pickup_address = serializers.CharField()
    pickup_lat = serializers.FloatField()
    pickup_lng = serializers.FloatField()
    dropoff_lat = serializers.FloatField()
    dropoff_lng = serializers.FloatField()


class StoreStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=lifecycle.targets_for(lifecycle.STORE))


class DriverStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=lifecycle.targets_for(lifecycle.DRIVER))


class ProofUploadSerializer(serializers.Serializer):
    image_url = serializers.CharField(max_length=500, required=False, allow_blank=False)
    file = serializers.FileField(required=False)

    def validate(self, attrs):
        if not attrs.get("image_url") and not attrs.get("file"):
            raise serializers.ValidationError("Provide image_url or a photo file")
        return attrs


class OrderSerializer(serializers.ModelSerializer):
    distance_km = serializers.DecimalField(max_digits=8, decimal_places=2, coerce_to_string=False)
    pickup_lat = serializers.FloatField()
    pickup_lng = serializers.FloatField()
    dropoff_lat = serializers.FloatField()
    dropoff_lng = serializers.FloatField()
    driver_price = money_field()
    platform_profit = money_field()
    profit_raw = money_field()
    store_price = money_field()
    rush_fee = money_field()

    class Meta:
        model = Order
        fields = (
            "id",
            "status",
            "recipient_name",
            "recipient_phone",
            "tag_number",
            "pickup_address",
            "pickup_lat",
            "pickup_lng",
            "dropoff_address",
            "dropoff_lat",
            "dropoff_lng",
            "distance_km",
            "eta_minutes",
            "deliver_after",
            "deliver_before",
            "driver_price",
            "platform_profit",
            "profit_raw",
            "store_price",
            "rush_fee",
            "rush_applied",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class StoreOrderSerializer(OrderSerializer):
    proof_images = serializers.SerializerMethodField()
    instructions = serializers.SerializerMethodField()
    driver = serializers.SerializerMethodField()

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ("proof_images", "instructions", "driver")
        read_only_fields = fields

    def get_proof_images(self, obj):
        return [proof.image_url for proof in obj.proofs.all()]

    def get_instructions(self, obj):
        instructions = getattr(obj, "instructions", None)
        return instructions.as_dict() if instructions else None

    def get_driver(self, obj):
        if not obj.driver:
            return None
        return {"id": obj.driver.id, "name": obj.driver.name, "phone": obj.driver.phone}


class DriverOrderSerializer(OrderSerializer):
    store = serializers.SerializerMethodField()

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ("store",)
        read_only_fields = fields

    def get_store(self, obj):
        store = obj.store
        return {
            "id": store.id,
            "name": store.name,
            "phone": store.phone,
            "address": store.address,
        }
