# wallet/gateways.py
# -*- coding: utf-8 -*-
"""
Payment gateway clients.

Each gateway exposes the same two calls:

* ``request(amount, description, callback_url, **extra)`` returns
  ``{"authority", "url", "raw"}`` or raises ``GatewayError``.
* ``verify(authority, amount)`` returns ``{"ok", "code", "ref_id", "raw"}``.
  Verification never raises; a transport failure is reported as ``ok=False``.

Amounts are always the stored ledger amount (Toman for Zarrinpal, USD for
Payment4).
"""
from __future__ import annotations

import logging
import secrets
import time
from decimal import Decimal

import requests
from django.conf import settings

log = logging.getLogger("wallet")


class GatewayError(Exception):
    pass


def _payments_conf() -> dict:
    return getattr(settings, "PAYMENTS", {}) or {}


def _gateway_conf(name: str) -> dict:
    return (_payments_conf().get("GATEWAYS") or {}).get(name) or {}


def _timeout() -> int:
    return int(_payments_conf().get("TIMEOUT", 15))


class BaseGateway:
    name = ""

    def request(self, amount, description: str, callback_url: str, **extra) -> dict:
        raise NotImplementedError

    def verify(self, authority: str, amount) -> dict:
        raise NotImplementedError


# ───────────────────────── Zarrinpal (تومان) ─────────────────────────
class ZarrinpalGateway(BaseGateway):
    name = "zarrinpal"

    SANDBOX_MERCHANT = "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
    API_BASE = "https://api.zarinpal.com/pg/v4/payment"
    SANDBOX_API_BASE = "https://sandbox.zarinpal.com/pg/v4/payment"
    START_PAY = "https://www.zarinpal.com/pg/StartPay"
    SANDBOX_START_PAY = "https://sandbox.zarinpal.com/pg/StartPay"
    SUCCESS_CODES = (100, 101)  # 101 = قبلاً تایید شده

    def __init__(self, conf: dict | None = None):
        conf = conf if conf is not None else _gateway_conf(self.name)
        self.merchant_id = conf.get("MERCHANT_ID") or ""
        self.sandbox = not self.merchant_id or bool(conf.get("TEST_MODE"))

    @property
    def api_base(self) -> str:
        return self.SANDBOX_API_BASE if not self.merchant_id else self.API_BASE

    @property
    def start_pay_base(self) -> str:
        return self.SANDBOX_START_PAY if self.sandbox else self.START_PAY

    def _post(self, endpoint: str, body: dict) -> dict:
        res = requests.post(
            f"{self.api_base}/{endpoint}",
            json={"merchant_id": self.merchant_id or self.SANDBOX_MERCHANT, **body},
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=_timeout(),
        )
        try:
            payload = res.json()
        except ValueError:
            payload = {}
        data = payload.get("data") if isinstance(payload, dict) else None
        if not data and isinstance(payload, dict):
            data = payload
        if res.status_code >= 400 and not (isinstance(data, dict) and data.get("code")):
            raise GatewayError(f"Zarrinpal {endpoint} HTTP {res.status_code}: {payload.get('errors') or payload}")
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _rial(amount) -> int:
        # زرین‌پال ریال می‌گیرد؛ دفتر کل تومان نگه می‌دارد
        return int(Decimal(amount)) * 10

    def request(self, amount, description, callback_url, **extra) -> dict:
        try:
            data = self._post("request.json", {
                "amount": self._rial(amount),
                "description": description,
                "callback_url": callback_url,
            })
        except requests.RequestException as e:
            raise GatewayError(f"Zarrinpal request failed: {e}") from e

        authority = data.get("authority") or data.get("Authority")
        log.info("ZARRINPAL_REQUEST_RESULT code=%s authority=%s", data.get("code"), authority)
        if not authority:
            raise GatewayError(f"Zarrinpal returned no authority (code={data.get('code')})")
        return {"authority": authority, "url": f"{self.start_pay_base}/{authority}", "raw": data}

    def verify(self, authority, amount) -> dict:
        try:
            data = self._post("verify.json", {"authority": authority, "amount": self._rial(amount)})
        except (requests.RequestException, GatewayError) as e:
            log.warning("ZARRINPAL_VERIFY_ERROR authority=%s err=%s", authority, e)
            return {"ok": False, "code": -1, "ref_id": "", "raw": {}}

        code = data.get("code", data.get("Code"))
        try:
            code = int(code)
        except (TypeError, ValueError):
            code = -1
        return {
            "ok": code in self.SUCCESS_CODES,
            "code": code,
            "ref_id": str(data.get("ref_id") or data.get("RefID") or ""),
            "raw": data,
        }


# ───────────────────────── Payment4 (USDT) ─────────────────────────
class Payment4Gateway(BaseGateway):
    name = "payment4"

    BASE_URL = "https://service.payment4.com/api/v1"
    MOCK_START_PAY = "https://service.payment4.com/mock/StartPay"
    SUCCESS_STATUSES = ("SUCCESS", "ACCEPTABLE")

    def __init__(self, conf: dict | None = None):
        conf = conf if conf is not None else _gateway_conf(self.name)
        self.api_key = conf.get("API_KEY") or ""
        self.mock = not self.api_key or bool(conf.get("TEST_MODE"))
        self.sandbox = bool(conf.get("SANDBOX"))

    def _headers(self) -> dict:
        return {"x-api-key": self.api_key, "Content-Type": "application/json", "Accept": "application/json"}

    def request(self, amount, description, callback_url, callback_params=None, currency="USD", language="EN",
                **extra) -> dict:
        if self.mock:
            uid = f"MOCK-{int(time.time() * 1000)}-{secrets.token_hex(3)}"
            log.warning("PAYMENT4_MOCK_REQUEST uid=%s", uid)
            return {"authority": uid, "url": f"{self.MOCK_START_PAY}/{uid}", "raw": {}}

        payload = {
            "amount": float(amount),
            "currency": currency,
            "callbackUrl": callback_url,
            "sandBox": self.sandbox,
            "language": language,
        }
        if callback_params:
            payload["callbackParams"] = callback_params

        try:
            res = requests.post(f"{self.BASE_URL}/payment", json=payload, headers=self._headers(), timeout=_timeout())
            res.raise_for_status()
            data = res.json()
        except (requests.RequestException, ValueError) as e:
            raise GatewayError(f"Payment4 create payment failed: {e}") from e

        uid, url = data.get("paymentUid"), data.get("paymentUrl")
        log.info("PAYMENT4_REQUEST_RESULT uid=%s", uid)
        if not (uid and url):
            raise GatewayError("Payment4 returned no paymentUid/paymentUrl")
        return {"authority": uid, "url": url, "raw": data}

    def verify(self, authority, amount, currency="USD") -> dict:
        if self.mock:
            return {"ok": True, "code": "SUCCESS", "ref_id": authority, "raw": {"verified": True}}

        payload = {"paymentUid": authority, "amount": float(amount), "currency": currency}
        try:
            res = requests.put(f"{self.BASE_URL}/payment/verify", json=payload, headers=self._headers(),
                               timeout=_timeout())
            res.raise_for_status()
            data = res.json()
        except (requests.RequestException, ValueError) as e:
            log.warning("PAYMENT4_VERIFY_ERROR uid=%s err=%s", authority, e)
            return {"ok": False, "code": "ERROR", "ref_id": "", "raw": {}}

        status = str(data.get("paymentStatus") or "").upper()
        return {
            "ok": bool(data.get("verified")) or status in self.SUCCESS_STATUSES,
            "code": status,
            "ref_id": authority,
            "raw": data,
        }


GATEWAYS = {
    ZarrinpalGateway.name: ZarrinpalGateway,
    Payment4Gateway.name: Payment4Gateway,
}


def get_gateway(name: str) -> BaseGateway:
    try:
        return GATEWAYS[(name or "").strip().lower()]()
    except KeyError:
        raise GatewayError(f"Unknown gateway: {name}")
