from decimal import Decimal

import pytest

from tournaments.models import Participant, Tournament
from wallet.models import Currency, Transaction
from wallet.services import create_deposit, settle_deposit, wallet_balances

pytestmark = pytest.mark.django_db


def _join_url(t):
    return f"/api/tournaments/{t.id}/join/"


def test_list_hides_drafts(api_client, make_tournament):
    published = make_tournament(title="Open Cup")
    make_tournament(title="Secret Cup", status=Tournament.Status.DRAFT)
    completed = make_tournament(title="Past Cup", status=Tournament.Status.COMPLETED)

    res = api_client.get("/api/tournaments/")

    assert res.status_code == 200
    ids = {t["id"] for t in res.json()["items"]}
    assert ids == {published.id, completed.id}


def test_detail_fields(api_client, make_tournament, make_user, add_participant):
    t = make_tournament()
    add_participant(t, make_user())
    add_participant(t, make_user(), status=Participant.Status.REJECTED)

    res = api_client.get(f"/api/tournaments/{t.id}/")

    assert res.status_code == 200
    data = res.json()["tournament"]
    assert data["entryFee"] == 50000
    assert data["participantsCount"] == 1
    assert data["createdBy"]["psnId"] == "AdminOne"
    assert data["prizeDistribution"][0] == {"position": 1, "prize": 300000}
    assert len(data["startAtJalali"]) == 16


def test_detail_of_draft_is_404(api_client, make_tournament):
    t = make_tournament(status=Tournament.Status.DRAFT)
    res = api_client.get(f"/api/tournaments/{t.id}/")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_join_debits_entry_fee(auth_client, user, fund, make_tournament):
    fund(user, toman=120000)
    t = make_tournament()

    res = auth_client.post(_join_url(t))

    assert res.status_code == 201
    body = res.json()
    assert body["participant"]["status"] == "APPROVED"
    assert body["transaction"]["type"] == "ENTRY_FEE"
    assert body["transaction"]["amount"] == "50000"
    assert wallet_balances(user)[0] == 70000

    participant = Participant.objects.get(tournament=t, user=user)
    assert participant.entry_transaction.tournament_id == t.id


def test_join_twice(auth_client, user, fund, make_tournament):
    fund(user, toman=200000)
    t = make_tournament()
    auth_client.post(_join_url(t))

    res = auth_client.post(_join_url(t))

    assert res.status_code == 409
    assert res.json()["message"] == "Already joined"
    assert wallet_balances(user)[0] == 150000
    assert Transaction.objects.filter(user=user, type=Transaction.Type.ENTRY_FEE).count() == 1


def test_join_insufficient_funds(auth_client, user, fund, make_tournament):
    fund(user, toman=49999)
    t = make_tournament()

    res = auth_client.post(_join_url(t))

    assert res.status_code == 400
    assert res.json()["message"] == "Insufficient funds"
    assert not Participant.objects.filter(tournament=t).exists()
    assert wallet_balances(user)[0] == 49999


def test_join_free_tournament_has_no_transaction(auth_client, user, make_tournament):
    t = make_tournament(entry_fee=0)
    res = auth_client.post(_join_url(t))

    assert res.status_code == 201
    assert "transaction" not in res.json()
    assert not Transaction.objects.exists()


def test_join_usdt_tournament(auth_client, user, fund, make_tournament):
    fund(user, usdt="15.00")
    t = make_tournament(currency="USDT", entry_fee=10, prize_pool=30,
                        prize_distribution=[{"position": 1, "prize": 30}])

    assert auth_client.post(_join_url(t)).status_code == 201
    assert wallet_balances(user) == (0, Decimal("5.00"))


def test_join_usdt_with_deposited_cents(auth_client, user, make_tournament):
    for amount in ("0.60", "0.10", "0.10", "0.10", "0.10"):
        tx = create_deposit(user, Transaction.Gateway.PAYMENT4, Currency.USDT, amount)
        settle_deposit(tx.id, True)
    t = make_tournament(currency="USDT", entry_fee=1, prize_pool=10,
                        prize_distribution=[{"position": 1, "prize": 10}])

    res = auth_client.post(_join_url(t))

    assert res.status_code == 201
    assert wallet_balances(user) == (0, Decimal("0.00"))


@pytest.mark.parametrize("status_,code", [
    (Tournament.Status.DRAFT, 404),
    (Tournament.Status.COMPLETED, 400),
])
def test_join_requires_published(auth_client, user, fund, make_tournament, status_, code):
    fund(user, toman=100000)
    t = make_tournament(status=status_)
    assert auth_client.post(_join_url(t)).status_code == code


def test_join_full_tournament(auth_client, user, fund, make_tournament, make_user, add_participant):
    fund(user, toman=100000)
    t = make_tournament(max_players=2)
    add_participant(t, make_user())
    add_participant(t, make_user())

    res = auth_client.post(_join_url(t))

    assert res.status_code == 400
    assert res.json()["message"] == "Tournament is full"
    assert wallet_balances(user)[0] == 100000


def test_join_requires_auth(api_client, make_tournament):
    t = make_tournament()
    assert api_client.post(_join_url(t)).status_code == 401


def test_join_unknown_tournament(auth_client):
    assert auth_client.post("/api/tournaments/999999/join/").status_code == 404
