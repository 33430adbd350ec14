# wallet/services.py
# -*- coding: utf-8 -*-
"""
Ledger operations.

Every balance change in the system goes through this module and happens in the
same ``transaction.atomic()`` block as the ``Transaction`` row that records it:

* ``settle_deposit`` is the only place a deposit leaves PENDING. It locks the
  ledger row, so a repeated or concurrent callback sees a settled row and
  credits nothing.
* ``debit`` / ``credit`` move money for entry fees and prize payouts.
* ``finalize_tournament`` pays out prizes once per tournament under a row lock
  on the tournament.
"""
from __future__ import annotations

import logging
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone

from tournaments.exceptions import AlreadyFinalized, InvalidDistribution
from tournaments.models import Tournament
from .models import Currency, Transaction, Wallet

log = logging.getLogger("wallet")

USDT_PLACES = Decimal("0.01")


class WalletError(Exception):
    status_code = 400


class InsufficientFunds(WalletError):
    def __init__(self, message="Insufficient funds"):
        super().__init__(message)


class InvalidTransition(WalletError):
    pass


class InvalidAmount(WalletError):
    pass


# ───────────────────────── Helpers ─────────────────────────
def normalize_amount(amount, currency: str) -> Decimal:
    """
    تومان: عدد صحیح مثبت
    USDT: حداکثر دو رقم اعشار
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount("Invalid amount")
    if not value.is_finite() or value <= 0:
        raise InvalidAmount("Invalid amount")

    if currency == Currency.USDT:
        if value.quantize(USDT_PLACES, rounding=ROUND_DOWN) != value:
            raise InvalidAmount("USDT amounts allow at most 2 decimal places")
        return value.quantize(USDT_PLACES)

    if value != value.to_integral_value():
        raise InvalidAmount("Toman amounts must be whole numbers")
    return value.quantize(Decimal("1"))


def get_wallet(user, lock: bool = False) -> Wallet:
    wallet, _ = Wallet.objects.get_or_create(user=user)
    if lock:
        wallet = Wallet.objects.select_for_update().get(pk=wallet.pk)
    return wallet


def wallet_balances(user):
    wallet = Wallet.objects.filter(user=user).first()
    if wallet is None:
        return 0, Decimal("0.00")
    return wallet.balance_toman, wallet.balance_usdt


def _balance_delta(currency: str, amount: Decimal):
    return amount if currency == Currency.USDT else int(amount)


def _move_balance(wallet: Wallet, currency: str, delta) -> Wallet:
    """
    Applies ``delta`` to a wallet row already locked with select_for_update.
    The sum is computed in Python so USDT stays an exact two-place Decimal
    instead of going through the database's float arithmetic.
    """
    field = Wallet.balance_field(currency)
    value = getattr(wallet, field) + delta
    if currency == Currency.USDT:
        value = Decimal(value).quantize(USDT_PLACES)
    setattr(wallet, field, value)
    wallet.save(update_fields=[field, "updated_at"])
    return wallet


# ───────────────────────── Balance moves ─────────────────────────
@transaction.atomic
def credit(user, currency: str, amount, *, type: str, gateway: str = Transaction.Gateway.INTERNAL,
           tournament=None, prize_position=None, description: str = "", metadata=None) -> Transaction:
    amount = normalize_amount(amount, currency)
    wallet = get_wallet(user, lock=True)
    _move_balance(wallet, currency, _balance_delta(currency, amount))

    tx = Transaction.objects.create(
        user=user, amount=amount, currency=currency, type=type, gateway=gateway,
        status=Transaction.Status.SUCCESS, tournament=tournament, prize_position=prize_position,
        description=description, metadata=metadata or {},
    )
    log.info("LEDGER_CREDIT tx=%s user=%s amount=%s %s", tx.id, user.pk, amount, currency)
    return tx


@transaction.atomic
def debit(user, currency: str, amount, *, type: str, tournament=None, description: str = "",
          metadata=None) -> Transaction:
    amount = normalize_amount(amount, currency)
    wallet = get_wallet(user, lock=True)
    field = Wallet.balance_field(currency)
    if getattr(wallet, field) < _balance_delta(currency, amount):
        raise InsufficientFunds()

    _move_balance(wallet, currency, -_balance_delta(currency, amount))
    tx = Transaction.objects.create(
        user=user, amount=amount, currency=currency, type=type, gateway=Transaction.Gateway.INTERNAL,
        status=Transaction.Status.SUCCESS, tournament=tournament, description=description,
        metadata=metadata or {},
    )
    log.info("LEDGER_DEBIT tx=%s user=%s amount=%s %s", tx.id, user.pk, amount, currency)
    return tx


# ───────────────────────── Deposits ─────────────────────────
def create_deposit(user, gateway: str, currency: str, amount, description: str = "") -> Transaction:
    amount = normalize_amount(amount, currency)
    return Transaction.objects.create(
        user=user, amount=amount, currency=currency, type=Transaction.Type.DEPOSIT,
        gateway=gateway, status=Transaction.Status.PENDING, description=description,
        metadata={"currency": "IRT" if currency == Currency.TOMAN else "USD"},
    )


def attach_authority(tx: Transaction, authority: str) -> Transaction:
    with transaction.atomic():
        tx.authority = authority
        tx.save(update_fields=["authority", "updated_at"])
    return tx


@transaction.atomic
def settle_deposit(tx_id, success: bool, ref_id: str = "", details=None):
    """
    PENDING → SUCCESS (با واریز به کیف پول) یا PENDING → FAILED.

    Returns ``(tx, changed)``. A deposit that is already settled is returned
    untouched with ``changed=False``; the balance is credited only on the call
    that performs the PENDING → SUCCESS move.
    """
    tx = Transaction.objects.select_for_update().filter(pk=tx_id).first()
    if tx is None:
        raise Transaction.DoesNotExist(f"Transaction {tx_id} not found")
    if tx.type != Transaction.Type.DEPOSIT:
        raise InvalidTransition("Only deposits can be settled")
    if tx.status != Transaction.Status.PENDING:
        log.info("SETTLE_SKIPPED tx=%s status=%s", tx.id, tx.status)
        return tx, False

    fields = ["status", "metadata", "updated_at"]
    if details:
        tx.metadata = {**(tx.metadata or {}), **details}
    if ref_id:
        tx.ref_id = str(ref_id)[:64]
        fields.append("ref_id")

    if success:
        wallet = get_wallet(tx.user, lock=True)
        _move_balance(wallet, tx.currency, _balance_delta(tx.currency, tx.amount))
        tx.status = Transaction.Status.SUCCESS
    else:
        tx.status = Transaction.Status.FAILED

    tx.save(update_fields=fields)
    log.info("SETTLE_DEPOSIT tx=%s user=%s status=%s amount=%s %s",
             tx.id, tx.user_id, tx.status, tx.amount, tx.currency)
    return tx, True


# ───────────────────────── Tournament payouts ─────────────────────────
def validate_distribution(distribution, prize_pool=None) -> list:
    if not distribution:
        raise InvalidDistribution()
    positions = set()
    total = 0
    for item in distribution:
        try:
            position = int(item["position"])
            prize = int(item.get("prize") or 0)
        except (KeyError, TypeError, ValueError):
            raise InvalidDistribution("Invalid prize distribution entry")
        if position < 1 or prize < 0:
            raise InvalidDistribution("Invalid prize distribution entry")
        if position in positions:
            raise InvalidDistribution(f"Duplicate prize position {position}")
        positions.add(position)
        total += prize
    if prize_pool is not None and total > prize_pool:
        raise InvalidDistribution("Total prizes exceed the prize pool")
    return sorted(distribution, key=lambda d: int(d["position"]))


def finalize_tournament(tournament_id, distribution=None) -> dict:
    """
    رتبه‌بندی شرکت‌کنندگان و پرداخت جوایز؛ دقیقاً یک‌بار برای هر مسابقه.
    ``distribution`` پیش‌فرض همان ``prize_distribution`` مسابقه است.
    """
    try:
        with transaction.atomic():
            tournament = Tournament.objects.select_for_update().get(pk=tournament_id)
            if tournament.status == Tournament.Status.COMPLETED:
                raise AlreadyFinalized()

            items = validate_distribution(
                distribution if distribution is not None else tournament.prize_distribution,
                tournament.prize_pool,
            )
            rankings = tournament.rankings()

            payouts = []
            for item in items:
                position, prize = int(item["position"]), int(item.get("prize") or 0)
                if position > len(rankings) or prize <= 0:
                    continue
                winner = rankings[position - 1]
                payouts.append(credit(
                    winner["participant"].user, tournament.currency, prize,
                    type=Transaction.Type.PRIZE_PAYOUT,
                    tournament=tournament,
                    prize_position=position,
                    description=f"Prize for position {position} in {tournament.title}",
                    metadata={"tournamentId": tournament.pk, "position": position},
                ))

            tournament.status = Tournament.Status.COMPLETED
            tournament.finalized_at = timezone.now()
            tournament.save(update_fields=["status", "finalized_at", "updated_at"])
    except IntegrityError:
        # پرداخت تکراری برای یک رتبه (unique tournament/prize_position)
        raise AlreadyFinalized()

    log.info("TOURNAMENT_FINALIZED tournament=%s payouts=%s", tournament.pk, len(payouts))
    return {"tournament": tournament, "rankings": rankings, "transactions": payouts}
