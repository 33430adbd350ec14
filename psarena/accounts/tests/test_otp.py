from datetime import timedelta

import pytest
from django.utils import timezone

from accounts import views as account_views
from accounts.models import OtpCode, UserProfile

pytestmark = pytest.mark.django_db

SEND_URL = "/api/otp/send/"
VERIFY_URL = "/api/otp/verify/"
CHECK_URL = "/api/otp/check/"


def _code(phone="09123456789", code="123456", **kwargs):
    return OtpCode.objects.create(
        phone=phone, code=code, expires_at=timezone.now() + timedelta(minutes=5), **kwargs
    )


def test_send_otp_normalizes_phone(api_client):
    res = api_client.post(SEND_URL, {"phone": "+989123456789"}, format="json")

    assert res.status_code == 200
    assert res.json()["expiresIn"] == 300
    record = OtpCode.objects.get(phone="09123456789")
    assert len(record.code) == 6
    assert record.verified is False


def test_send_otp_cooldown(api_client):
    api_client.post(SEND_URL, {"phone": "09123456789"}, format="json")
    res = api_client.post(SEND_URL, {"phone": "09123456789"}, format="json")

    assert res.status_code == 429
    assert 0 < res.json()["retryAfter"] <= 60
    assert OtpCode.objects.filter(phone="09123456789").count() == 1


def test_send_otp_after_cooldown(api_client):
    _code(created_at=timezone.now() - timedelta(seconds=61))
    res = api_client.post(SEND_URL, {"phone": "09123456789"}, format="json")
    assert res.status_code == 200
    assert OtpCode.objects.filter(phone="09123456789").count() == 2


@pytest.mark.parametrize("phone", ["12345678901", "0812345678", ""])
def test_send_otp_invalid_phone(api_client, phone):
    res = api_client.post(SEND_URL, {"phone": phone}, format="json")
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_send_otp_phone_taken(api_client, make_user):
    make_user(phone="09123456789", phone_verified=True)
    res = api_client.post(SEND_URL, {"phone": "09123456789"}, format="json")
    assert res.status_code == 409


def test_send_otp_sms_failure(api_client, monkeypatch):
    monkeypatch.setattr(account_views, "send_verification_code", lambda phone, code: False)
    res = api_client.post(SEND_URL, {"phone": "09123456789"}, format="json")
    assert res.status_code == 500


def test_verify_wrong_code_counts_attempts(api_client):
    record = _code()
    res = api_client.post(VERIFY_URL, {"phone": "09123456789", "code": "000000"}, format="json")

    assert res.status_code == 400
    assert "4" in res.json()["message"]
    record.refresh_from_db()
    assert record.attempts == 1
    assert record.verified is False


def test_verify_too_many_attempts(api_client):
    _code(attempts=5)
    res = api_client.post(VERIFY_URL, {"phone": "09123456789", "code": "123456"}, format="json")
    assert res.status_code == 429


def test_verify_expired_code(api_client):
    OtpCode.objects.create(phone="09123456789", code="123456",
                           expires_at=timezone.now() - timedelta(seconds=1))
    res = api_client.post(VERIFY_URL, {"phone": "09123456789", "code": "123456"}, format="json")
    assert res.status_code == 400


def test_verify_success_clears_other_codes(api_client):
    _code(code="999999", created_at=timezone.now() - timedelta(minutes=2))
    latest = _code()

    res = api_client.post(VERIFY_URL, {"phone": "09123456789", "code": "123456"}, format="json")

    assert res.status_code == 200
    assert res.json()["verified"] is True
    assert list(OtpCode.objects.filter(phone="09123456789")) == [latest]
    latest.refresh_from_db()
    assert latest.verified is True

    res = api_client.post(CHECK_URL, {"phone": "09123456789"}, format="json")
    assert res.json() == {"success": True, "verified": True}


def test_verify_authenticated_sets_profile_phone(auth_client, user):
    _code()
    res = auth_client.post(VERIFY_URL, {"phone": "09123456789", "code": "123456"}, format="json")

    assert res.status_code == 200
    profile = UserProfile.objects.get(user=user)
    assert profile.phone == "09123456789"
    assert profile.phone_verified is True


def test_verify_authenticated_phone_taken_keeps_code(auth_client, user, make_user):
    make_user(phone="09123456789", phone_verified=True)
    older = _code(code="999999", created_at=timezone.now() - timedelta(minutes=2))
    latest = _code()

    res = auth_client.post(VERIFY_URL, {"phone": "09123456789", "code": "123456"}, format="json")

    assert res.status_code == 409
    latest.refresh_from_db()
    assert latest.verified is False
    assert latest.attempts == 1
    assert OtpCode.objects.filter(pk=older.pk).exists()
    assert UserProfile.objects.get(user=user).phone_verified is False


def test_check_without_verification(api_client):
    _code()
    res = api_client.post(CHECK_URL, {"phone": "09123456789"}, format="json")
    assert res.json()["verified"] is False

    res = api_client.post(CHECK_URL, {"phone": "123"}, format="json")
    assert res.status_code == 400
