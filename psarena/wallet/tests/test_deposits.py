from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest

from wallet import services
from wallet.gateways import GatewayError, Payment4Gateway, ZarrinpalGateway
from wallet.models import Currency, Transaction

pytestmark = pytest.mark.django_db

ZP_DEPOSIT_URL = "/api/wallet/deposit/zarrinpal/"
ZP_VERIFY_URL = "/api/wallet/verify/zarrinpal/"
P4_DEPOSIT_URL = "/api/wallet/deposit/payment4/"
P4_VERIFY_URL = "/api/wallet/verify/payment4/"


@pytest.fixture(autouse=True)
def _gateway_settings(settings):
    settings.PAYMENTS = {
        "RETURN_PATH": "/wallet",
        "TIMEOUT": 5,
        "GATEWAYS": {
            "zarrinpal": {"MERCHANT_ID": "", "TEST_MODE": True},
            "payment4": {"API_KEY": "", "TEST_MODE": True, "SANDBOX": True},
        },
    }


def _redirect(res):
    assert res.status_code == 302
    url = urlparse(res["Location"])
    return f"{url.scheme}://{url.netloc}{url.path}", {k: v[0] for k, v in parse_qs(url.query).items()}


def _zarrinpal_tx(user, amount="100000", authority="A000000000000000000000000000123456"):
    tx = services.create_deposit(user, Transaction.Gateway.ZARRINPAL, Currency.TOMAN, amount)
    return services.attach_authority(tx, authority)


@pytest.fixture
def zp_verify(monkeypatch):
    calls = []

    def fake_verify(self, authority, amount):
        calls.append((authority, Decimal(amount)))
        return {"ok": True, "code": 100, "ref_id": "201", "raw": {}}

    monkeypatch.setattr(ZarrinpalGateway, "verify", fake_verify)
    return calls


# ───────────────────────── Zarrinpal ─────────────────────────
def test_zarrinpal_deposit_creates_pending(auth_client, user, monkeypatch):
    seen = {}

    def fake_request(self, amount, description, callback_url, **extra):
        seen.update(amount=amount, callback_url=callback_url)
        return {"authority": "A0000123", "url": "https://sandbox.zarinpal.com/pg/StartPay/A0000123", "raw": {}}

    monkeypatch.setattr(ZarrinpalGateway, "request", fake_request)

    res = auth_client.post(ZP_DEPOSIT_URL, {"amount": 100000}, format="json")

    assert res.status_code == 200
    body = res.json()
    assert body["url"].endswith("/A0000123")
    tx = Transaction.objects.get(pk=body["transactionId"])
    assert tx.status == Transaction.Status.PENDING
    assert tx.authority == "A0000123"
    assert tx.amount == Decimal("100000")
    assert seen["callback_url"] == f"http://api.test/api/wallet/verify/zarrinpal/?txId={tx.id}"


def test_zarrinpal_deposit_gateway_error(auth_client, monkeypatch):
    def fail(self, *args, **kwargs):
        raise GatewayError("code=-9")

    monkeypatch.setattr(ZarrinpalGateway, "request", fail)

    res = auth_client.post(ZP_DEPOSIT_URL, {"amount": 100000}, format="json")

    assert res.status_code == 502
    assert res.json()["message"] == "Payment initiation failed"
    assert Transaction.objects.get().status == Transaction.Status.FAILED


def test_zarrinpal_deposit_duplicate_authority(auth_client, user, monkeypatch):
    first = _zarrinpal_tx(user, authority="A0000DUP")

    def fake_request(self, amount, description, callback_url, **extra):
        return {"authority": "A0000DUP", "url": "https://sandbox.zarinpal.com/pg/StartPay/A0000DUP", "raw": {}}

    monkeypatch.setattr(ZarrinpalGateway, "request", fake_request)

    res = auth_client.post(ZP_DEPOSIT_URL, {"amount": 50000}, format="json")

    assert res.status_code == 502
    assert res.json()["message"] == "Payment initiation failed"
    second = Transaction.objects.exclude(pk=first.pk).get()
    assert second.status == Transaction.Status.FAILED
    assert second.authority is None
    assert Transaction.objects.filter(authority="A0000DUP").count() == 1
    assert services.wallet_balances(user)[0] == 0


@pytest.mark.parametrize("amount", ["12.5", "0", "-100", "abc", ""])
def test_zarrinpal_deposit_invalid_amount(auth_client, amount):
    res = auth_client.post(ZP_DEPOSIT_URL, {"amount": amount}, format="json")
    assert res.status_code == 400
    assert not Transaction.objects.exists()


def test_deposit_requires_auth(api_client):
    res = api_client.post(ZP_DEPOSIT_URL, {"amount": 100000}, format="json")
    assert res.status_code == 401


def test_zarrinpal_callback_success_is_idempotent(api_client, user, zp_verify):
    tx = _zarrinpal_tx(user)
    query = {"txId": str(tx.id), "Authority": tx.authority, "Status": "OK"}

    base, params = _redirect(api_client.get(ZP_VERIFY_URL, query))
    assert base == "http://front.test/wallet"
    assert params == {"status": "success"}

    # درگاه ممکن است callback را تکرار کند
    base, params = _redirect(api_client.get(ZP_VERIFY_URL, query))
    assert params["status"] == "success"

    tx.refresh_from_db()
    assert tx.status == Transaction.Status.SUCCESS
    assert tx.ref_id == "201"
    assert services.wallet_balances(user)[0] == 100000
    assert len(zp_verify) == 1


def test_zarrinpal_verify_uses_stored_amount(api_client, user, zp_verify):
    tx = _zarrinpal_tx(user, amount="75000")
    api_client.get(ZP_VERIFY_URL, {"txId": str(tx.id), "Authority": tx.authority, "Status": "OK", "Amount": "1"})
    assert zp_verify == [(tx.authority, Decimal("75000"))]


def test_zarrinpal_callback_nok(api_client, user, zp_verify):
    tx = _zarrinpal_tx(user)

    _, params = _redirect(api_client.get(ZP_VERIFY_URL, {"txId": str(tx.id), "Authority": tx.authority,
                                                          "Status": "NOK"}))

    assert params == {"status": "failed", "gw": "zarrinpal", "reason": "NOK"}
    tx.refresh_from_db()
    assert tx.status == Transaction.Status.FAILED
    assert zp_verify == []
    assert services.wallet_balances(user)[0] == 0


def test_zarrinpal_callback_authority_mismatch(api_client, user, zp_verify):
    tx = _zarrinpal_tx(user)

    _, params = _redirect(api_client.get(ZP_VERIFY_URL, {"txId": str(tx.id), "Authority": "A999",
                                                          "Status": "OK"}))

    assert params["reason"] == "authority_mismatch"
    tx.refresh_from_db()
    assert tx.status == Transaction.Status.PENDING
    assert zp_verify == []


def test_zarrinpal_callback_verify_rejected(api_client, user, monkeypatch):
    monkeypatch.setattr(ZarrinpalGateway, "verify",
                        lambda self, authority, amount: {"ok": False, "code": -51, "ref_id": "", "raw": {}})
    tx = _zarrinpal_tx(user)

    _, params = _redirect(api_client.get(ZP_VERIFY_URL, {"txId": str(tx.id), "Authority": tx.authority,
                                                          "Status": "OK"}))

    assert params == {"status": "failed", "gw": "zarrinpal", "code": "-51"}
    tx.refresh_from_db()
    assert tx.status == Transaction.Status.FAILED
    assert tx.metadata["verifyCode"] == -51


@pytest.mark.parametrize("tx_id", ["", "not-a-uuid", "00000000-0000-0000-0000-000000000000"])
def test_zarrinpal_callback_unknown_tx(api_client, tx_id):
    _, params = _redirect(api_client.get(ZP_VERIFY_URL, {"txId": tx_id, "Status": "OK"}))
    assert params == {"status": "failed", "gw": "zarrinpal"}


def test_zarrinpal_callback_unexpected_error(api_client, user, monkeypatch):
    def broken(self, authority, amount):
        raise RuntimeError("boom")

    monkeypatch.setattr(ZarrinpalGateway, "verify", broken)
    tx = _zarrinpal_tx(user)

    _, params = _redirect(api_client.get(ZP_VERIFY_URL, {"txId": str(tx.id), "Authority": tx.authority,
                                                          "Status": "OK"}))

    assert params["status"] == "failed"
    tx.refresh_from_db()
    assert tx.status == Transaction.Status.PENDING


# ───────────────────────── Payment4 ─────────────────────────
def test_payment4_mock_deposit_and_callback(auth_client, api_client, user):
    res = auth_client.post(P4_DEPOSIT_URL, {"amount": "10.5"}, format="json")

    assert res.status_code == 200
    body = res.json()
    assert "/mock/StartPay/MOCK-" in body["url"]
    tx = Transaction.objects.get(pk=body["transactionId"])
    assert tx.currency == Currency.USDT
    assert tx.amount == Decimal("10.50")
    assert tx.authority.startswith("MOCK-")

    base, params = _redirect(api_client.get(P4_VERIFY_URL, {"txId": str(tx.id), "paymentUid": tx.authority,
                                                             "paymentStatus": "SUCCESS"}))
    assert params == {"status": "success"}
    assert services.wallet_balances(user)[1] == Decimal("10.50")

    api_client.get(P4_VERIFY_URL, {"txId": str(tx.id), "paymentUid": tx.authority})
    assert services.wallet_balances(user)[1] == Decimal("10.50")


def test_payment4_rejects_three_decimals(auth_client):
    res = auth_client.post(P4_DEPOSIT_URL, {"amount": "10.555"}, format="json")
    assert res.status_code == 400


def test_payment4_query_status_alone_never_credits(api_client, user, monkeypatch):
    monkeypatch.setattr(Payment4Gateway, "verify",
                        lambda self, uid, amount, currency="USD": {"ok": False, "code": "PENDING",
                                                                   "ref_id": uid, "raw": {}})
    tx = services.create_deposit(user, Transaction.Gateway.PAYMENT4, Currency.USDT, "5")
    services.attach_authority(tx, "uid-1")

    _, params = _redirect(api_client.get(P4_VERIFY_URL, {"txId": str(tx.id), "paymentUid": "uid-1",
                                                         "paymentStatus": "SUCCESS"}))

    assert params == {"status": "failed", "gw": "payment4"}
    tx.refresh_from_db()
    assert tx.status == Transaction.Status.FAILED
    assert services.wallet_balances(user)[1] == Decimal("0.00")


def test_payment4_uid_mismatch(api_client, user):
    tx = services.create_deposit(user, Transaction.Gateway.PAYMENT4, Currency.USDT, "5")
    services.attach_authority(tx, "uid-1")

    _, params = _redirect(api_client.get(P4_VERIFY_URL, {"txId": str(tx.id), "paymentUid": "uid-2"}))

    assert params["reason"] == "authority_mismatch"
    tx.refresh_from_db()
    assert tx.status == Transaction.Status.PENDING


def test_payment4_callback_ignores_zarrinpal_tx(api_client, user):
    tx = _zarrinpal_tx(user)
    _, params = _redirect(api_client.get(P4_VERIFY_URL, {"txId": str(tx.id)}))
    assert params == {"status": "failed", "gw": "payment4"}


# ───────────────────────── Wallet summary ─────────────────────────
def test_wallet_summary(auth_client, user, fund):
    fund(user, toman=5000)
    services.credit(user, Currency.TOMAN, 1000, type=Transaction.Type.PRIZE_PAYOUT)
    _zarrinpal_tx(user, amount="20000")

    res = auth_client.get("/api/wallet/")

    body = res.json()
    assert res.status_code == 200
    assert body["walletBalance"] == "6000"
    assert body["usdtBalance"] == "0.00"
    assert len(body["transactions"]) == 2
    assert {t["amount"] for t in body["transactions"]} == {"1000", "20000"}
