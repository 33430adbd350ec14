import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Wallet",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("balance_toman", models.BigIntegerField(default=0)),
                ("balance_usdt", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, related_name="wallet", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "verbose_name": "کیف پول",
                "verbose_name_plural": "کیف‌های پول",
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("balance_toman__gte", 0)), name="wallet_toman_non_negative"),
                    models.CheckConstraint(condition=models.Q(("balance_usdt__gte", 0)), name="wallet_usdt_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("currency", models.CharField(
                    choices=[("TOMAN", "تومان"), ("USDT", "تتر")], default="TOMAN", max_length=8,
                )),
                ("type", models.CharField(
                    choices=[("DEPOSIT", "واریز"), ("ENTRY_FEE", "ورودی مسابقه"), ("PRIZE_PAYOUT", "پرداخت جایزه")],
                    max_length=16,
                )),
                ("status", models.CharField(
                    choices=[("PENDING", "در انتظار"), ("SUCCESS", "موفق"), ("FAILED", "ناموفق")],
                    db_index=True, default="PENDING", max_length=8,
                )),
                ("gateway", models.CharField(
                    choices=[("ZARRINPAL", "زرین‌پال"), ("PAYMENT4", "Payment4"), ("INTERNAL", "داخلی")],
                    max_length=12,
                )),
                ("authority", models.CharField(blank=True, max_length=128, null=True)),
                ("ref_id", models.CharField(blank=True, default="", max_length=64)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("prize_position", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "verbose_name": "تراکنش",
                "verbose_name_plural": "تراکنش‌ها",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="transaction_amount_positive"),
                    models.UniqueConstraint(
                        condition=models.Q(("authority__isnull", False)),
                        fields=("gateway", "authority"),
                        name="uniq_gateway_authority",
                    ),
                ],
            },
        ),
    ]
