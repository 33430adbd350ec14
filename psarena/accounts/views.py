# accounts/views.py
import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import authenticate, get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from tournaments.models import Tournament
from tournaments.serializers import TournamentPublicSerializer
from wallet.services import wallet_balances
from . import psn
from .models import OtpCode, UserProfile
from .serializers import (LinkPsnSerializer, LoginSerializer, PhoneSerializer,
                          RegisterSerializer, UserSafeSerializer, VerifyOtpSerializer)
from .utils import generate_otp_code, normalize_phone, send_verification_code

logger = logging.getLogger(__name__)

User = get_user_model()


# ---------- Helpers ----------

def _bad_request(message, code=status.HTTP_400_BAD_REQUEST, **extra):
    return Response({"success": False, "message": message, **extra}, status=code)


def _has_recent_verified_otp(phone: str) -> bool:
    since = timezone.now() - timedelta(minutes=settings.OTP_VERIFIED_WINDOW_MINUTES)
    return OtpCode.objects.filter(phone=phone, verified=True, created_at__gt=since).exists()


def _phone_taken(phone: str, exclude_user=None) -> bool:
    qs = UserProfile.objects.filter(phone=phone, phone_verified=True)
    if exclude_user is not None:
        qs = qs.exclude(user=exclude_user)
    return qs.exists()


def issue_token(user) -> str:
    refresh = RefreshToken.for_user(user)
    access = refresh.access_token
    access["role"] = UserProfile.ROLE_ADMIN if user.is_staff else UserProfile.ROLE_USER
    return str(access)


def user_payload(profile: UserProfile, with_wallet: bool = False) -> dict:
    data = UserSafeSerializer(profile).data
    if with_wallet:
        toman, usdt = wallet_balances(profile.user)
        data["walletBalance"] = str(toman)
        data["usdtBalance"] = str(usdt)
    return data


# ---------- Register / Login ----------

class RegisterAPIView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = RegisterSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        email = data["email"]
        psn_id = data["psnId"]
        phone = data.get("phone")

        if User.objects.filter(Q(email__iexact=email) | Q(username__iexact=email)).exists():
            return _bad_request("Email already in use", status.HTTP_409_CONFLICT)
        if UserProfile.objects.filter(psn_id__iexact=psn_id).exists():
            return _bad_request("PSN ID already in use", status.HTTP_409_CONFLICT)

        if phone:
            if _phone_taken(phone):
                return _bad_request("این شماره موبایل قبلاً ثبت شده است", status.HTTP_409_CONFLICT)
            if not _has_recent_verified_otp(phone):
                return _bad_request("شماره موبایل تایید نشده است")

        try:
            with transaction.atomic():
                user = User.objects.create_user(username=email, email=email, password=data["password"])
                profile = UserProfile.objects.create(
                    user=user,
                    name=data["name"].strip(),
                    psn_id=psn_id,
                    phone=phone,
                    phone_verified=bool(phone),
                )
        except IntegrityError:
            # ثبت‌نام هم‌زمان با همان ایمیل/PSN
            return _bad_request("Email or PSN ID already in use", status.HTTP_409_CONFLICT)

        logger.info("User registered id=%s psn=%s", user.id, psn_id)
        return Response(
            {"success": True, "user": user_payload(profile), "message": "Account created. Please log in."},
            status=status.HTTP_201_CREATED,
        )


class LoginAPIView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = LoginSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        email = ser.validated_data["email"]
        user = authenticate(username=email, password=ser.validated_data["password"])
        if not user:
            return _bad_request("Invalid email or password", status.HTTP_401_UNAUTHORIZED)

        profile = getattr(user, "profile", None)
        if profile is None:
            # ادمین‌هایی که با createsuperuser ساخته شده‌اند
            profile = UserProfile.objects.create(user=user, name=user.get_username()[:60], psn_id=f"admin{user.id}")

        return Response({"success": True, "token": issue_token(user), "user": user_payload(profile)})


class MeAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        profile = UserProfile.objects.filter(user=request.user).select_related("user").first()
        if not profile:
            return _bad_request("User not found", status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "user": user_payload(profile, with_wallet=True)})


# ---------- OTP ----------

class SendOtpAPIView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        ser = PhoneSerializer(data=request.data)
        if not ser.is_valid():
            return _bad_request("شماره موبایل نامعتبر است")

        phone = normalize_phone(ser.validated_data["phone"])
        if not phone:
            return _bad_request("فرمت شماره موبایل نادرست است. لطفا شماره را به فرمت 09xxxxxxxxx وارد کنید")

        exclude = request.user if request.user.is_authenticated else None
        if _phone_taken(phone, exclude_user=exclude):
            return _bad_request("این شماره موبایل قبلاً ثبت شده است", status.HTTP_409_CONFLICT)

        # محدودیت ارسال: یک کد در هر دقیقه
        recent = OtpCode.objects.filter(phone=phone).order_by("-created_at").first()
        if recent:
            elapsed = (timezone.now() - recent.created_at).total_seconds()
            if elapsed < settings.OTP_COOLDOWN_SECONDS:
                remaining = int(settings.OTP_COOLDOWN_SECONDS - elapsed) + 1
                remaining = min(remaining, settings.OTP_COOLDOWN_SECONDS)
                return _bad_request(f"لطفاً {remaining} ثانیه صبر کنید", status.HTTP_429_TOO_MANY_REQUESTS,
                                    retryAfter=remaining)

        code = generate_otp_code()
        now = timezone.now()
        OtpCode.objects.create(
            phone=phone, code=code, created_at=now,
            expires_at=now + timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
        )

        if not send_verification_code(phone, code):
            logger.error("Failed to send OTP SMS to %s", phone)
            return _bad_request("ارسال پیامک با خطا مواجه شد. لطفاً دوباره تلاش کنید",
                                status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({
            "success": True,
            "message": "کد تایید ارسال شد",
            "expiresIn": settings.OTP_EXPIRY_MINUTES * 60,
        })


class VerifyOtpAPIView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        ser = VerifyOtpSerializer(data=request.data)
        if not ser.is_valid():
            errors = ser.errors
            msg = (errors.get("code") or errors.get("phone") or ["داده‌های نامعتبر"])[0]
            return _bad_request(str(msg))

        phone = normalize_phone(ser.validated_data["phone"])
        code = ser.validated_data["code"]
        if not phone:
            return _bad_request("شماره موبایل نامعتبر است")

        with transaction.atomic():
            record = (
                OtpCode.objects.select_for_update()
                .filter(phone=phone, verified=False, expires_at__gt=timezone.now())
                .order_by("-created_at")
                .first()
            )
            if not record:
                return _bad_request("کد تایید منقضی شده یا وجود ندارد. لطفاً کد جدید دریافت کنید")

            if record.attempts >= settings.OTP_MAX_ATTEMPTS:
                return _bad_request("تعداد تلاش‌های شما بیش از حد مجاز است. لطفاً کد جدید دریافت کنید",
                                    status.HTTP_429_TOO_MANY_REQUESTS)

            record.attempts += 1
            if record.code != code:
                record.save(update_fields=["attempts"])
                remaining = settings.OTP_MAX_ATTEMPTS - record.attempts
                return _bad_request(f"کد تایید اشتباه است. {remaining} تلاش باقی‌مانده")

            if request.user.is_authenticated and _phone_taken(phone, exclude_user=request.user):
                record.save(update_fields=["attempts"])
                return _bad_request("این شماره موبایل قبلاً ثبت شده است", status.HTTP_409_CONFLICT)

            record.verified = True
            record.save(update_fields=["attempts", "verified"])
            OtpCode.objects.filter(phone=phone).exclude(pk=record.pk).delete()

            if request.user.is_authenticated:
                UserProfile.objects.filter(user=request.user).update(phone=phone, phone_verified=True)

        return Response({"success": True, "message": "شماره موبایل تایید شد", "verified": True})


class CheckOtpAPIView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        phone = normalize_phone(request.data.get("phone"))
        if not phone:
            return Response({"success": False, "verified": False}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"success": True, "verified": _has_recent_verified_otp(phone)})


# ---------- PSN ----------

class LinkPsnAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = LinkPsnSerializer(data=request.data)
        if not ser.is_valid():
            return _bad_request("Missing npsso in request body")

        try:
            tokens = psn.exchange_npsso(ser.validated_data["npsso"])
        except psn.PsnError as e:
            logger.warning("PSN npsso exchange failed user=%s: %s", request.user.id, e)
            return _bad_request("Failed to obtain refresh token from PSN", status.HTTP_502_BAD_GATEWAY)

        refresh_token = tokens["refresh_token"]
        try:
            profile = psn.get_profile(tokens["access_token"])
        except psn.PsnError as e:
            return _bad_request("Failed to fetch PSN profile", status.HTTP_502_BAD_GATEWAY, detail=str(e))

        online_id = psn.extract_online_id(profile)
        if not online_id:
            return _bad_request("Unable to determine PSN Online ID from profile", status.HTTP_502_BAD_GATEWAY)

        account = UserProfile.objects.filter(user=request.user).first()
        if not account:
            return _bad_request("User not found", status.HTTP_404_NOT_FOUND)
        if not account.psn_id:
            return _bad_request("No PSN ID on your account to verify against")

        if online_id.lower() != account.psn_id.lower():
            return _bad_request("PSN ID mismatch. You can only link the account you signed up with.",
                                status.HTTP_403_FORBIDDEN)

        account.psn_refresh_token = refresh_token
        account.is_psn_verified = True
        account.save(update_fields=["psn_refresh_token", "is_psn_verified"])
        logger.info("PSN linked user=%s online_id=%s", request.user.id, online_id)

        return Response({"success": True, "message": "PSN account linked and verified"})


class UserProfileAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        account = get_object_or_404(UserProfile.objects.select_related("user"), user_id=user_id)

        public_user = {
            "id": account.user_id,
            "name": account.name,
            "psnId": account.psn_id,
            "isPsnVerified": account.is_psn_verified,
        }
        # ایمیل فقط برای خود کاربر و ادمین
        if request.user.id == account.user_id or request.user.is_staff:
            public_user["email"] = account.user.email

        tournaments = (
            Tournament.objects
            .filter(Q(created_by_id=user_id) | Q(participants__user_id=user_id))
            .distinct()
            .order_by("-start_at")
        )

        psn_data = None
        if account.is_psn_verified and account.psn_refresh_token:
            result = psn.get_profile_data(account.psn_refresh_token)
            if result["success"]:
                psn_data = {"profile": result["profile"], "library": result["library"]}
            else:
                psn_data = {"error": result["error"]}

        return Response({
            "success": True,
            "user": public_user,
            "tournaments": TournamentPublicSerializer(tournaments, many=True).data,
            "psn": psn_data,
        })
