import re

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import PSN_ID_VALIDATOR, UserProfile
from .utils import normalize_phone

User = get_user_model()


# -------------------- ثبت‌نام / ورود --------------------
class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(
        min_length=2, max_length=60,
        error_messages={"min_length": "Name must be at least 2 characters"},
    )
    email = serializers.EmailField(error_messages={"invalid": "Invalid email"})
    password = serializers.CharField(
        min_length=8, write_only=True, trim_whitespace=False,
        error_messages={"min_length": "Password must be at least 8 characters"},
    )
    psnId = serializers.CharField(validators=[PSN_ID_VALIDATOR])
    acceptTerms = serializers.BooleanField()
    phone = serializers.CharField(required=False, allow_blank=True)

    def validate_email(self, value):
        return value.strip().lower()

    def validate_password(self, value):
        if not re.search(r"[A-Za-z]", value) or not re.search(r"\d", value):
            raise serializers.ValidationError("Password must include letters and numbers")
        return value

    def validate_acceptTerms(self, value):
        if value is not True:
            raise serializers.ValidationError("You must accept the terms")
        return value

    def validate_phone(self, value):
        if not value:
            return None
        phone = normalize_phone(value)
        if not phone:
            raise serializers.ValidationError("شماره موبایل نامعتبر است")
        return phone


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={"invalid": "Invalid email"})
    password = serializers.CharField(trim_whitespace=False, error_messages={"blank": "Password is required"})

    def validate_email(self, value):
        return value.strip().lower()


class UserSafeSerializer(serializers.ModelSerializer):
    """نمای امن کاربر (بدون هش رمز و توکن PSN)."""
    id = serializers.IntegerField(source="user.id")
    email = serializers.EmailField(source="user.email")
    psnId = serializers.CharField(source="psn_id")
    role = serializers.CharField()
    phoneVerified = serializers.BooleanField(source="phone_verified")
    isPsnVerified = serializers.BooleanField(source="is_psn_verified")
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = UserProfile
        fields = ("id", "email", "name", "psnId", "role", "phone", "phoneVerified", "isPsnVerified", "createdAt")


# -------------------- OTP --------------------
class PhoneSerializer(serializers.Serializer):
    phone = serializers.CharField(
        min_length=10, max_length=15,
        error_messages={
            "blank": "شماره موبایل معتبر نیست",
            "required": "شماره موبایل را وارد کنید",
            "min_length": "شماره موبایل معتبر نیست",
            "max_length": "شماره موبایل معتبر نیست",
        },
    )


class VerifyOtpSerializer(PhoneSerializer):
    code = serializers.CharField(
        min_length=6, max_length=6,
        error_messages={
            "min_length": "کد تایید باید 6 رقم باشد",
            "max_length": "کد تایید باید 6 رقم باشد",
            "required": "کد تایید باید 6 رقم باشد",
        },
    )


# -------------------- PSN --------------------
class LinkPsnSerializer(serializers.Serializer):
    npsso = serializers.CharField(error_messages={"required": "Missing npsso in request body",
                                                  "blank": "Missing npsso in request body"})
