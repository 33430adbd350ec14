from datetime import timedelta

from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models
from django.utils import timezone

PSN_ID_VALIDATOR = RegexValidator(
    r"^[A-Za-z][A-Za-z0-9_-]{2,15}$",
    "PSN ID must start with a letter and be 3-16 chars; only letters, numbers, - and _ allowed",
)


# -----------------------------
# ۱. پروفایل کاربر
# -----------------------------
class UserProfile(models.Model):
    ROLE_USER = "USER"
    ROLE_ADMIN = "ADMIN"

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    name = models.CharField(max_length=60)
    psn_id = models.CharField("PSN ID", max_length=16, unique=True, validators=[PSN_ID_VALIDATOR])

    phone = models.CharField(max_length=11, null=True, blank=True, db_index=True)
    phone_verified = models.BooleanField(default=False)

    # توکن refresh شبکه‌ی PSN؛ هیچ‌وقت در پاسخ‌های API برنمی‌گردد
    psn_refresh_token = models.TextField(blank=True, default="")
    is_psn_verified = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "کاربر"
        verbose_name_plural = "کاربران"
        constraints = [
            models.UniqueConstraint(
                fields=["phone"],
                condition=models.Q(phone_verified=True),
                name="uniq_verified_phone",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.psn_id})"

    @property
    def role(self) -> str:
        return self.ROLE_ADMIN if self.user.is_staff else self.ROLE_USER


# -----------------------------
# ۲. کد تایید پیامکی
# -----------------------------
class OtpCode(models.Model):
    phone = models.CharField(max_length=11, db_index=True)
    code = models.CharField(max_length=6)
    attempts = models.PositiveIntegerField(default=0)
    verified = models.BooleanField(default=False)
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "کد تایید"
        verbose_name_plural = "کدهای تایید"

    def __str__(self):
        return f"{self.phone} ({'verified' if self.verified else 'pending'})"

    def save(self, *args, **kwargs):
        if not self.expires_at:
            self.expires_at = (self.created_at or timezone.now()) + timedelta(minutes=settings.OTP_EXPIRY_MINUTES)
        super().save(*args, **kwargs)

    def is_expired(self) -> bool:
        return timezone.now() >= self.expires_at
