# wallet/models.py
import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q


class Currency(models.TextChoices):
    TOMAN = "TOMAN", "تومان"
    USDT = "USDT", "تتر"


# -----------------------------
# ۱. کیف پول
# -----------------------------
class Wallet(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="wallet")
    balance_toman = models.BigIntegerField(default=0)
    balance_usdt = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "کیف پول"
        verbose_name_plural = "کیف‌های پول"
        constraints = [
            models.CheckConstraint(condition=Q(balance_toman__gte=0), name="wallet_toman_non_negative"),
            models.CheckConstraint(condition=Q(balance_usdt__gte=0), name="wallet_usdt_non_negative"),
        ]

    def __str__(self):
        return f"{self.user} ({self.balance_toman} T / {self.balance_usdt} USDT)"

    @staticmethod
    def balance_field(currency: str) -> str:
        return "balance_usdt" if currency == Currency.USDT else "balance_toman"


# -----------------------------
# ۲. تراکنش‌های دفتر کل
# -----------------------------
class Transaction(models.Model):
    class Type(models.TextChoices):
        DEPOSIT = "DEPOSIT", "واریز"
        ENTRY_FEE = "ENTRY_FEE", "ورودی مسابقه"
        PRIZE_PAYOUT = "PRIZE_PAYOUT", "پرداخت جایزه"

    class Status(models.TextChoices):
        PENDING = "PENDING", "در انتظار"
        SUCCESS = "SUCCESS", "موفق"
        FAILED = "FAILED", "ناموفق"

    class Gateway(models.TextChoices):
        ZARRINPAL = "ZARRINPAL", "زرین‌پال"
        PAYMENT4 = "PAYMENT4", "Payment4"
        INTERNAL = "INTERNAL", "داخلی"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="transactions")
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=8, choices=Currency.choices, default=Currency.TOMAN)
    type = models.CharField(max_length=16, choices=Type.choices)
    status = models.CharField(max_length=8, choices=Status.choices, default=Status.PENDING, db_index=True)
    gateway = models.CharField(max_length=12, choices=Gateway.choices)

    # Authority زرین‌پال / paymentUid در Payment4
    authority = models.CharField(max_length=128, null=True, blank=True)
    ref_id = models.CharField(max_length=64, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)

    tournament = models.ForeignKey(
        "tournaments.Tournament", null=True, blank=True, on_delete=models.PROTECT, related_name="transactions"
    )
    prize_position = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "تراکنش"
        verbose_name_plural = "تراکنش‌ها"
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name="transaction_amount_positive"),
            models.UniqueConstraint(
                fields=["gateway", "authority"],
                condition=Q(authority__isnull=False),
                name="uniq_gateway_authority",
            ),
            models.UniqueConstraint(
                fields=["tournament", "prize_position"],
                condition=Q(type="PRIZE_PAYOUT"),
                name="uniq_prize_per_position",
            ),
        ]

    def __str__(self):
        return f"{self.id} - {self.type} {self.amount} {self.currency} - {self.status}"

    @property
    def is_settled(self) -> bool:
        return self.status != self.Status.PENDING
