# -*- coding: utf-8 -*-
from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from tournaments.exceptions import AlreadyJoined, NotJoinable
from tournaments.models import Participant, Tournament
from wallet.models import Transaction
from wallet.services import debit

logger = logging.getLogger(__name__)


def join_tournament(tournament_id: int, user) -> Participant:
    """
    ثبت‌نام کاربر در مسابقه‌ی منتشرشده.
    کسر ورودی، ردیف ENTRY_FEE و شرکت‌کننده‌ی APPROVED در یک تراکنش پایگاه‌داده.
    """
    with transaction.atomic():
        tournament = Tournament.objects.select_for_update().filter(pk=tournament_id).first()
        if tournament is None or not tournament.is_public:
            raise Tournament.DoesNotExist()
        if tournament.status != Tournament.Status.PUBLISHED:
            raise NotJoinable()
        if Participant.objects.filter(tournament=tournament, user=user).exists():
            raise AlreadyJoined()
        if tournament.approved_count() >= tournament.max_players:
            raise NotJoinable("Tournament is full")

        entry_tx = None
        if tournament.entry_fee > 0:
            entry_tx = debit(
                user, tournament.currency, tournament.entry_fee,
                type=Transaction.Type.ENTRY_FEE,
                tournament=tournament,
                description=f"Entry fee for {tournament.title}",
                metadata={"tournamentId": tournament.pk},
            )

        try:
            with transaction.atomic():
                participant = Participant.objects.create(
                    tournament=tournament,
                    user=user,
                    status=Participant.Status.APPROVED,
                    entry_transaction=entry_tx,
                )
        except IntegrityError:
            raise AlreadyJoined()

    logger.info("JOIN tournament=%s user=%s fee=%s %s", tournament.pk, user.pk, tournament.entry_fee, tournament.currency)
    return participant
