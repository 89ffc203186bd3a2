import uuid
from decimal import Decimal

from django.db import migrations, models


def order_document_fields():
    return [
        ("customer_id", models.CharField(db_index=True, max_length=128)),
        ("restaurant_id", models.CharField(db_index=True, max_length=128)),
        ("items", models.JSONField(default=list)),
        ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
        ("coupon_code", models.CharField(blank=True, max_length=50, null=True)),
        ("coupon_discount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
        ("loyalty_points_applied", models.PositiveIntegerField(default=0)),
        ("loyalty_discount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
        ("delivery_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
        ("tax", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
        ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
        (
            "status",
            models.CharField(
                choices=[
                    ("Pending", "Pending"),
                    ("Confirmed", "Confirmed"),
                    ("Preparing", "Preparing"),
                    ("Ready for Pickup", "Ready for Pickup"),
                    ("Out for Delivery", "Out for Delivery"),
                    ("Delivered", "Delivered"),
                    ("Cancelled", "Cancelled"),
                    ("Failed", "Failed"),
                ],
                db_index=True,
                default="Pending",
                max_length=32,
            ),
        ),
        ("delivery_address", models.TextField()),
        ("customer_name", models.CharField(blank=True, default="", max_length=255)),
        ("customer_phone", models.CharField(blank=True, default="", max_length=32)),
        ("payment_method", models.CharField(max_length=50)),
        ("created_at", models.DateTimeField()),
        ("updated_at", models.DateTimeField()),
        ("donated", models.BooleanField(default=False)),
        ("donation_target_id", models.CharField(blank=True, max_length=128, null=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
            ]
            + order_document_fields(),
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["restaurant_id", "-created_at"], name="order_restaurant_created_idx"),
                    models.Index(fields=["restaurant_id", "donated"], name="order_restaurant_donated_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
            ]
            + order_document_fields()
            + [
                ("order_id", models.UUIDField(db_index=True, editable=False)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("customer_id", "order_id"), name="unique_customer_order_mirror"
                    ),
                ],
            },
        ),
    ]
