# wallet/views.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import uuid
from urllib.parse import urlencode

from django.conf import settings
from django.db import IntegrityError, transaction
from django.http import HttpResponseRedirect
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdmin
from .gateways import GatewayError, get_gateway
from .models import Currency, Transaction
from .serializers import (AdminTransactionSerializer, AdminTransactionUpdateSerializer, DepositSerializer,
                          TransactionSerializer)
from .services import (InvalidAmount, WalletError, attach_authority, create_deposit, settle_deposit,
                       wallet_balances)

log = logging.getLogger("wallet")


# ───────────────────────── Helpers ─────────────────────────
def _client_origin() -> str:
    origins = getattr(settings, "CLIENT_ORIGINS", None) or ["http://localhost:5173"]
    return str(origins[0]).strip().rstrip("/")


def _wallet_redirect(state: str, **params) -> HttpResponseRedirect:
    query = {"status": state, **{k: v for k, v in params.items() if v not in (None, "")}}
    return_path = (getattr(settings, "PAYMENTS", {}) or {}).get("RETURN_PATH", "/wallet")
    url = f"{_client_origin()}{return_path}?{urlencode(query)}"
    log.info("WALLET_REDIRECT %s", url)
    return HttpResponseRedirect(url)


def _redirect_for(tx: Transaction, **params) -> HttpResponseRedirect:
    state = "success" if tx.status == Transaction.Status.SUCCESS else "failed"
    return _wallet_redirect(state, **params)


def _find_tx(tx_id, gateway: str):
    try:
        pk = uuid.UUID(str(tx_id))
    except (TypeError, ValueError):
        return None
    return Transaction.objects.filter(pk=pk, gateway=gateway, type=Transaction.Type.DEPOSIT).first()


def _callback_url(name: str, **params) -> str:
    url = f"{settings.API_BASE_URL}/api/wallet/verify/{name}/"
    return f"{url}?{urlencode(params)}" if params else url


def _error(message, code=status.HTTP_400_BAD_REQUEST):
    return Response({"success": False, "message": message}, status=code)


# ───────────────────────── Wallet ─────────────────────────
class WalletView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        toman, usdt = wallet_balances(request.user)
        rows = Transaction.objects.filter(user=request.user).order_by("-created_at")[:20]
        return Response({
            "success": True,
            "walletBalance": str(toman),
            "usdtBalance": str(usdt),
            "transactions": TransactionSerializer(rows, many=True).data,
        })


class _DepositView(APIView):
    permission_classes = [IsAuthenticated]

    gateway_name = ""
    ledger_gateway = ""
    currency = ""

    def request_payment(self, gateway, tx: Transaction) -> dict:
        raise NotImplementedError

    def post(self, request):
        ser = DepositSerializer(data=request.data)
        if not ser.is_valid():
            return _error("Invalid amount")

        try:
            tx = create_deposit(request.user, self.ledger_gateway, self.currency, ser.validated_data["amount"])
        except InvalidAmount as e:
            return _error(str(e))

        try:
            created = self.request_payment(get_gateway(self.gateway_name), tx)
            attach_authority(tx, created["authority"])
        except (GatewayError, IntegrityError) as e:
            log.error("%s_DEPOSIT_FAILED tx=%s err=%s", self.gateway_name.upper(), tx.id, e)
            settle_deposit(tx.id, False, details={"error": str(e)[:500]})
            return _error("Payment initiation failed", status.HTTP_502_BAD_GATEWAY)

        log.info("%s_DEPOSIT_CREATED tx=%s user=%s amount=%s", self.gateway_name.upper(), tx.id,
                 request.user.pk, tx.amount)
        return Response({"success": True, "url": created["url"], "transactionId": str(tx.id)})


class ZarrinpalDepositView(_DepositView):
    gateway_name = "zarrinpal"
    ledger_gateway = Transaction.Gateway.ZARRINPAL
    currency = Currency.TOMAN

    def request_payment(self, gateway, tx):
        return gateway.request(
            tx.amount,
            f"Wallet deposit tx {tx.id} for user {tx.user_id}",
            _callback_url("zarrinpal", txId=tx.id),
        )


class Payment4DepositView(_DepositView):
    gateway_name = "payment4"
    ledger_gateway = Transaction.Gateway.PAYMENT4
    currency = Currency.USDT

    def request_payment(self, gateway, tx):
        # Payment4 پارامترهای خودش و callbackParams را به آدرس اضافه می‌کند
        return gateway.request(
            tx.amount,
            f"Wallet deposit tx {tx.id}",
            _callback_url("payment4"),
            callback_params={"txId": str(tx.id)},
            currency="USD",
            language="EN",
        )


# ───────────────────────── Gateway callbacks ─────────────────────────
class ZarrinpalVerifyView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        q = request.query_params
        tx_id = q.get("txId")
        authority_q = q.get("Authority") or q.get("authority")
        status_q = q.get("Status") or q.get("status")
        log.info("ZARRINPAL_CALLBACK tx=%s authority=%s status=%s", tx_id, authority_q, status_q)

        try:
            tx = _find_tx(tx_id, Transaction.Gateway.ZARRINPAL)
            if tx is None:
                return _wallet_redirect("failed", gw="zarrinpal")
            if tx.is_settled:
                return _redirect_for(tx, gw="zarrinpal")

            if status_q and status_q != "OK":
                tx, _ = settle_deposit(tx.id, False, details={"gatewayStatus": status_q})
                return _redirect_for(tx, gw="zarrinpal", reason=status_q)

            if authority_q and tx.authority and authority_q != tx.authority:
                log.warning("ZARRINPAL_AUTHORITY_MISMATCH tx=%s stored=%s query=%s", tx.id, tx.authority, authority_q)
                return _wallet_redirect("failed", gw="zarrinpal", reason="authority_mismatch")

            authority = tx.authority or authority_q
            if not authority:
                tx, _ = settle_deposit(tx.id, False, details={"error": "missing authority"})
                return _wallet_redirect("failed", gw="zarrinpal")

            result = get_gateway("zarrinpal").verify(authority, tx.amount)
            log.info("ZARRINPAL_VERIFY_RESULT tx=%s code=%s", tx.id, result["code"])
            tx, _ = settle_deposit(tx.id, result["ok"], ref_id=result["ref_id"],
                                   details={"verifyCode": result["code"]})
            if tx.status == Transaction.Status.SUCCESS:
                return _wallet_redirect("success")
            return _wallet_redirect("failed", gw="zarrinpal", code=result["code"])
        except Exception:
            log.exception("ZARRINPAL_CALLBACK_ERROR tx=%s", tx_id)
            return _wallet_redirect("failed", gw="zarrinpal")


class Payment4VerifyView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        q = request.query_params
        tx_id = q.get("txId")
        uid_q = q.get("paymentUid")
        status_q = q.get("paymentStatus") or q.get("status")
        log.info("PAYMENT4_CALLBACK tx=%s uid=%s status=%s", tx_id, uid_q, status_q)

        try:
            tx = _find_tx(tx_id, Transaction.Gateway.PAYMENT4)
            if tx is None:
                return _wallet_redirect("failed", gw="payment4")
            if tx.is_settled:
                return _redirect_for(tx, gw="payment4")

            if uid_q and tx.authority and uid_q != tx.authority:
                log.warning("PAYMENT4_UID_MISMATCH tx=%s stored=%s query=%s", tx.id, tx.authority, uid_q)
                return _wallet_redirect("failed", gw="payment4", reason="authority_mismatch")

            uid = tx.authority or uid_q
            if not uid:
                tx, _ = settle_deposit(tx.id, False, details={"error": "missing paymentUid"})
                return _wallet_redirect("failed", gw="payment4")

            # وضعیت query به‌تنهایی هیچ‌وقت واریز نمی‌کند؛ فقط نتیجه‌ی verify
            result = get_gateway("payment4").verify(uid, tx.amount, currency="USD")
            log.info("PAYMENT4_VERIFY_RESULT tx=%s status=%s ok=%s", tx.id, result["code"], result["ok"])
            tx, _ = settle_deposit(tx.id, result["ok"], ref_id=result["ref_id"],
                                   details={"verifyStatus": result["code"], "callbackStatus": status_q or ""})
            return _redirect_for(tx, gw=None if tx.status == Transaction.Status.SUCCESS else "payment4")
        except Exception:
            log.exception("PAYMENT4_CALLBACK_ERROR tx=%s", tx_id)
            return _wallet_redirect("failed", gw="payment4")


# ───────────────────────── Admin ─────────────────────────
def _int_param(value, default, lo, hi=None):
    try:
        n = int(value)
    except (TypeError, ValueError):
        n = default
    n = max(lo, n)
    return min(hi, n) if hi is not None else n


class AdminTransactionListView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request):
        q = request.query_params
        qs = Transaction.objects.select_related("user", "user__profile").order_by("-created_at")

        if q.get("status") in Transaction.Status.values:
            qs = qs.filter(status=q["status"])
        if q.get("gateway") in Transaction.Gateway.values:
            qs = qs.filter(gateway=q["gateway"])
        if q.get("userId"):
            try:
                qs = qs.filter(user_id=int(q["userId"]))
            except ValueError:
                return _error("Invalid userId")

        take = _int_param(q.get("take"), 50, lo=1, hi=200)
        skip = _int_param(q.get("skip"), 0, lo=0)
        count = qs.count()
        items = qs[skip:skip + take]
        return Response({"success": True, "items": AdminTransactionSerializer(items, many=True).data, "count": count})


class AdminTransactionDetailView(APIView):
    permission_classes = [IsAdmin]

    def patch(self, request, pk):
        tx = Transaction.objects.filter(pk=pk).first()
        if not tx:
            return _error("Transaction not found", status.HTTP_404_NOT_FOUND)

        ser = AdminTransactionUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        new_status = ser.validated_data.get("status")
        metadata = ser.validated_data.get("metadata")

        if new_status and new_status != tx.status:
            if tx.status != Transaction.Status.PENDING:
                return _error("Only pending transactions can change status")
            if new_status == Transaction.Status.PENDING:
                return _error("Invalid status")
            try:
                tx, changed = settle_deposit(
                    tx.pk, new_status == Transaction.Status.SUCCESS,
                    details={"settledBy": f"admin:{request.user.pk}"},
                )
            except WalletError as e:
                return _error(str(e))
            if not changed:
                # هم‌زمان توسط callback درگاه تسویه شده
                return _error("Only pending transactions can change status")
            log.info("ADMIN_SETTLE tx=%s status=%s by=%s", tx.pk, tx.status, request.user.pk)

        if metadata:
            with transaction.atomic():
                tx = Transaction.objects.select_for_update().get(pk=tx.pk)
                tx.metadata = {**(tx.metadata or {}), **metadata}
                tx.save(update_fields=["metadata", "updated_at"])

        tx = Transaction.objects.select_related("user", "user__profile").get(pk=tx.pk)
        return Response({"success": True, "transaction": AdminTransactionSerializer(tx).data})
