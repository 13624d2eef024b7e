import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("drivers", "0001_initial"),
        ("stores", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("recipient_name", models.CharField(max_length=120)),
                ("recipient_phone", models.CharField(max_length=20)),
                ("tag_number", models.CharField(blank=True, max_length=50)),
                ("pickup_address", models.CharField(max_length=255)),
                ("pickup_lat", models.DecimalField(decimal_places=6, max_digits=9)),
                ("pickup_lng", models.DecimalField(decimal_places=6, max_digits=9)),
                ("dropoff_address", models.CharField(max_length=255)),
                ("dropoff_lat", models.DecimalField(decimal_places=6, max_digits=9)),
                ("dropoff_lng", models.DecimalField(decimal_places=6, max_digits=9)),
                ("distance_km", models.DecimalField(decimal_places=2, max_digits=8)),
                ("eta_minutes", models.PositiveIntegerField()),
                ("deliver_after", models.DateTimeField(blank=True, null=True)),
                ("deliver_before", models.DateTimeField(blank=True, null=True)),
                ("status", models.CharField(choices=[("CREATED", "Created"), ("PREPARING", "Preparing"), ("READY_FOR_PICKUP", "Ready For Pickup"), ("ACCEPTED", "Accepted"), ("PICKED_UP", "Picked Up"), ("DELIVERED", "Delivered")], default="CREATED", max_length=20)),
                ("driver_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("platform_profit", models.DecimalField(decimal_places=2, max_digits=10)),
                ("profit_raw", models.DecimalField(decimal_places=2, max_digits=10)),
                ("store_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("rush_fee", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("rush_applied", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("driver", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="drivers.driverprofile")),
                ("store", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="stores.store")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["store", "-created_at"], name="order_store_created_idx"),
                    models.Index(fields=["status", "driver"], name="order_status_driver_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("driver__isnull", False), ("status__in", ("ACCEPTED", "PICKED_UP", "DELIVERED"))),
                            models.Q(models.Q(("status__in", ("ACCEPTED", "PICKED_UP", "DELIVERED")), _negated=True), ("driver__isnull", True)),
                            _connector="OR",
                        ),
                        name="order_driver_matches_status",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DeliveryInstructions",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("buzz_code", models.CharField(blank=True, max_length=50)),
                ("unit", models.CharField(blank=True, max_length=50)),
                ("note", models.TextField(blank=True)),
                ("order", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="instructions", to="orders.order")),
            ],
            options={
                "verbose_name_plural": "Delivery instructions",
            },
        ),
        migrations.CreateModel(
            name="ProofRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("image_url", models.CharField(max_length=500)),
                ("uploaded_by_role", models.CharField(choices=[("STORE", "Store"), ("DRIVER", "Driver")], max_length=10)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="proofs", to="orders.order")),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [models.Index(fields=["order", "uploaded_by_role"], name="proof_order_role_idx")],
            },
        ),
    ]
