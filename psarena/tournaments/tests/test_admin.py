from datetime import timedelta

import pytest
from django.utils import timezone

from tournaments.models import Match, Participant, Tournament
from tournaments.services.registration_service import join_tournament

pytestmark = pytest.mark.django_db

ADMIN_URL = "/api/admin/tournaments/"


def _payload(**overrides):
    data = {
        "title": "Weekend FC Cup",
        "game": "EA SPORTS FC 25",
        "description": "Single elimination",
        "entryFee": 50000,
        "prizePool": 300000,
        "currency": "TOMAN",
        "prizeDistribution": [{"position": 2, "prize": 100000}, {"position": 1, "prize": 200000}],
        "maxPlayers": 16,
        "startAt": (timezone.now() + timedelta(days=3)).isoformat(),
    }
    data.update(overrides)
    return data


# ---------- CRUD ----------

def test_admin_endpoints_require_staff(auth_client, api_client):
    assert auth_client.get(ADMIN_URL).status_code == 403
    assert api_client.post(ADMIN_URL, _payload(), format="json").status_code == 401


def test_create_tournament(admin_client, admin_user):
    res = admin_client.post(ADMIN_URL, _payload(), format="json")

    assert res.status_code == 201
    data = res.json()["tournament"]
    assert data["status"] == "DRAFT"
    assert data["createdBy"]["id"] == admin_user.id
    assert [p["position"] for p in data["prizeDistribution"]] == [1, 2]

    t = Tournament.objects.get(pk=data["id"])
    assert t.created_by == admin_user
    assert t.rules == ""


@pytest.mark.parametrize("overrides,field", [
    ({"title": "ab"}, "title"),
    ({"maxPlayers": 1}, "maxPlayers"),
    ({"entryFee": -1}, "entryFee"),
    ({"currency": "EUR"}, "currency"),
    ({"prizeDistribution": [{"position": 1, "prize": 400000}]}, "prizeDistribution"),
    ({"prizeDistribution": [{"position": 1, "prize": 1}, {"position": 1, "prize": 2}]}, "prizeDistribution"),
    ({"prizeDistribution": [{"prize": 1}]}, "prizeDistribution"),
])
def test_create_tournament_validation(admin_client, overrides, field):
    res = admin_client.post(ADMIN_URL, _payload(**overrides), format="json")

    assert res.status_code == 400
    body = res.json()
    assert body["message"] == "Validation failed"
    assert field in body["errors"]


def test_admin_list_pagination(admin_client, make_tournament):
    for i in range(5):
        make_tournament(title=f"Cup {i}", status=Tournament.Status.DRAFT if i % 2 else Tournament.Status.PUBLISHED)

    body = admin_client.get(ADMIN_URL, {"page": 2, "pageSize": 2}).json()
    assert body["total"] == 5
    assert body["totalPages"] == 3
    assert body["page"] == 2
    assert len(body["items"]) == 2

    body = admin_client.get(ADMIN_URL, {"status": "DRAFT"}).json()
    assert body["total"] == 2

    body = admin_client.get(ADMIN_URL, {"q": "cup 3"}).json()
    assert [t["title"] for t in body["items"]] == ["Cup 3"]


def test_admin_detail_update_delete(admin_client, make_tournament):
    t = make_tournament(status=Tournament.Status.DRAFT)
    url = f"{ADMIN_URL}{t.id}/"

    assert admin_client.get(url).json()["tournament"]["title"] == "FC 25 Cup"

    res = admin_client.put(url, _payload(title="Renamed Cup"), format="json")
    assert res.status_code == 200
    t.refresh_from_db()
    assert t.title == "Renamed Cup"
    assert t.status == Tournament.Status.DRAFT

    assert admin_client.delete(url).status_code == 200
    assert not Tournament.objects.filter(pk=t.pk).exists()
    assert admin_client.get(url).status_code == 404


def test_update_checks_stored_distribution_against_new_pool(admin_client, make_tournament):
    t = make_tournament(status=Tournament.Status.DRAFT)
    url = f"{ADMIN_URL}{t.id}/"
    payload = _payload(prizePool=1000)
    del payload["prizeDistribution"]

    res = admin_client.put(url, payload, format="json")

    assert res.status_code == 400
    assert "prizeDistribution" in res.json()["errors"]
    t.refresh_from_db()
    assert t.prize_pool == 400000

    payload["prizePool"] = 500000
    assert admin_client.put(url, payload, format="json").status_code == 200
    t.refresh_from_db()
    assert t.prize_pool == 500000
    assert sum(p["prize"] for p in t.prize_distribution) == 400000


def test_delete_tournament_with_ledger_rows(admin_client, user, fund, make_tournament):
    fund(user, toman=100000)
    t = make_tournament()
    join_tournament(t.id, user)

    res = admin_client.delete(f"{ADMIN_URL}{t.id}/")

    assert res.status_code == 409
    assert Tournament.objects.filter(pk=t.pk).exists()


def test_status_change(admin_client, make_tournament):
    t = make_tournament(status=Tournament.Status.DRAFT)
    url = f"{ADMIN_URL}{t.id}/status/"

    res = admin_client.patch(url, {"status": "PUBLISHED"}, format="json")
    assert res.status_code == 200
    assert res.json()["tournament"]["status"] == "PUBLISHED"

    res = admin_client.patch(url, {"status": "FINISHED"}, format="json")
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid status"

    res = admin_client.patch(url, {"status": "COMPLETED"}, format="json")
    assert res.status_code == 400
    t.refresh_from_db()
    assert t.status == Tournament.Status.PUBLISHED


def test_participants_list(admin_client, make_tournament, user, add_participant):
    t = make_tournament()
    add_participant(t, user)

    res = admin_client.get(f"{ADMIN_URL}{t.id}/participants/")

    assert res.status_code == 200
    assert [p["user"]["psnId"] for p in res.json()["participants"]] == ["Kratos_1"]


# ---------- Matches ----------

@pytest.fixture
def bracket(make_tournament, make_user, add_participant):
    t = make_tournament()
    p1 = add_participant(t, make_user(psn_id="Alpha"))
    p2 = add_participant(t, make_user(psn_id="Bravo"))
    pending = add_participant(t, make_user(psn_id="Charlie"), status=Participant.Status.PENDING)
    return t, p1, p2, pending


def test_create_match(admin_client, bracket):
    t, p1, p2, _ = bracket

    res = admin_client.post(f"{ADMIN_URL}{t.id}/matches/",
                            {"player1Id": p1.id, "player2Id": p2.id, "round": 2}, format="json")

    assert res.status_code == 201
    data = res.json()["match"]
    assert data["status"] == "SCHEDULED"
    assert data["round"] == 2
    assert data["player1"]["user"]["psnId"] == "Alpha"
    assert data["scheduledAt"] is not None

    listed = admin_client.get(f"{ADMIN_URL}{t.id}/matches/").json()["matches"]
    assert [m["id"] for m in listed] == [data["id"]]


def test_create_match_rejects_bad_players(admin_client, bracket, make_tournament, make_user, add_participant):
    t, p1, p2, pending = bracket
    url = f"{ADMIN_URL}{t.id}/matches/"

    res = admin_client.post(url, {"player1Id": p1.id, "player2Id": p1.id}, format="json")
    assert res.status_code == 400
    assert res.json()["message"] == "Cannot match player against themselves"

    res = admin_client.post(url, {"player1Id": p1.id, "player2Id": pending.id}, format="json")
    assert res.status_code == 400

    outsider = add_participant(make_tournament(title="Other Cup"), make_user())
    res = admin_client.post(url, {"player1Id": p1.id, "player2Id": outsider.id}, format="json")
    assert res.status_code == 400

    res = admin_client.post(url, {"player1Id": p1.id}, format="json")
    assert res.json()["message"] == "Both players required"
    assert not Match.objects.exists()


def _match(t, p1, p2):
    return Match.objects.create(tournament=t, player1=p1, player2=p2)


def test_update_match_computes_winner(admin_client, bracket):
    t, p1, p2, _ = bracket
    match = _match(t, p1, p2)
    url = f"{ADMIN_URL}{t.id}/matches/{match.id}/"

    res = admin_client.put(url, {"score1": 1, "score2": 3, "status": "COMPLETED"}, format="json")
    assert res.status_code == 200
    assert res.json()["match"]["winnerId"] == p2.id

    res = admin_client.put(url, {"score1": 2, "score2": 2}, format="json")
    assert res.json()["match"]["winnerId"] is None


def test_update_match_explicit_winner(admin_client, bracket):
    t, p1, p2, pending = bracket
    match = _match(t, p1, p2)
    url = f"{ADMIN_URL}{t.id}/matches/{match.id}/"

    res = admin_client.put(url, {"winnerId": pending.id}, format="json")
    assert res.status_code == 400
    assert res.json()["message"] == "Winner must be one of the match players"

    res = admin_client.put(url, {"winnerId": p1.id, "psnMatchId": "psn-42"}, format="json")
    assert res.status_code == 200
    match.refresh_from_db()
    assert match.winner_id == p1.id
    assert match.psn_match_id == "psn-42"


def test_update_match_of_other_tournament(admin_client, bracket, make_tournament):
    t, p1, p2, _ = bracket
    match = _match(t, p1, p2)
    other = make_tournament(title="Other Cup")

    res = admin_client.put(f"{ADMIN_URL}{other.id}/matches/{match.id}/", {"score1": 1}, format="json")
    assert res.status_code == 404
