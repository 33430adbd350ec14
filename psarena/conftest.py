from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import UserProfile
from tournaments.models import Participant, Tournament
from wallet.models import Wallet

User = get_user_model()


@pytest.fixture(autouse=True)
def _sms_dry_run(settings):
    settings.SMS_DRY_RUN = True
    settings.CLIENT_ORIGINS = ["http://front.test", "http://other.test"]
    settings.API_BASE_URL = "http://api.test"


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email=None, psn_id=None, password="secret123", is_staff=False, name="Player", **profile):
        counter["n"] += 1
        n = counter["n"]
        email = email or f"user{n}@example.com"
        user = User.objects.create_user(username=email, email=email, password=password, is_staff=is_staff)
        UserProfile.objects.create(user=user, name=name, psn_id=psn_id or f"Player{n}", **profile)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user(email="player@example.com", psn_id="Kratos_1")


@pytest.fixture
def admin_user(make_user):
    return make_user(email="admin@example.com", psn_id="AdminOne", is_staff=True, name="Admin")


@pytest.fixture
def auth_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def fund():
    def _fund(u, toman=0, usdt="0"):
        wallet, _ = Wallet.objects.get_or_create(user=u)
        wallet.balance_toman = toman
        wallet.balance_usdt = Decimal(usdt)
        wallet.save()
        return wallet

    return _fund


@pytest.fixture
def make_tournament(admin_user):
    def _make(**kwargs):
        data = {
            "title": "FC 25 Cup",
            "game": "EA SPORTS FC 25",
            "entry_fee": 50000,
            "prize_pool": 400000,
            "currency": "TOMAN",
            "prize_distribution": [{"position": 1, "prize": 300000}, {"position": 2, "prize": 100000}],
            "max_players": 8,
            "start_at": timezone.now() + timedelta(days=2),
            "status": Tournament.Status.PUBLISHED,
            "created_by": admin_user,
        }
        data.update(kwargs)
        return Tournament.objects.create(**data)

    return _make


@pytest.fixture
def add_participant():
    def _add(tournament, u, status=Participant.Status.APPROVED):
        return Participant.objects.create(tournament=tournament, user=u, status=status)

    return _add
