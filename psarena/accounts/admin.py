# accounts/admin.py
from django.contrib import admin

from .models import OtpCode, UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "psn_id", "user", "phone", "phone_verified", "is_psn_verified", "created_at")
    list_filter = ("phone_verified", "is_psn_verified")
    search_fields = ("name", "psn_id", "phone", "user__email")
    raw_id_fields = ("user",)
    # توکن PSN در پنل نمایش داده نمی‌شود
    exclude = ("psn_refresh_token",)


@admin.register(OtpCode)
class OtpCodeAdmin(admin.ModelAdmin):
    list_display = ("phone", "verified", "attempts", "expires_at", "created_at")
    list_filter = ("verified",)
    search_fields = ("phone",)
    readonly_fields = ("code",)
