# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from accounts import psn
from tournaments.exceptions import AlreadyFinalized, TournamentError
from tournaments.models import Match, Participant, Tournament
from wallet.services import finalize_tournament

logger = logging.getLogger(__name__)

RECENT_PLAY_WINDOW = timedelta(hours=2)


class MatchError(TournamentError):
    pass


# ───────────────────────── ایجاد / ویرایش بازی ─────────────────────────
def create_match(tournament: Tournament, player1_id: int, player2_id: int, round_no: int = 1,
                 psn_match_id: Optional[str] = None) -> Match:
    approved = Participant.objects.filter(
        tournament=tournament, id__in=[player1_id, player2_id], status=Participant.Status.APPROVED,
    ).count()
    if approved != 2:
        raise MatchError("Both players must be approved participants")

    return Match.objects.create(
        tournament=tournament,
        player1_id=player1_id,
        player2_id=player2_id,
        round=round_no or 1,
        psn_match_id=psn_match_id or None,
        status=Match.Status.SCHEDULED,
        scheduled_at=timezone.now(),
    )


UNSET = object()


def update_match(match: Match, score1=UNSET, score2=UNSET, status=None, psn_match_id=UNSET,
                 round_no=None, winner_id=UNSET) -> Match:
    if score1 is not UNSET:
        match.score1 = score1
    if score2 is not UNSET:
        match.score2 = score2
    if status:
        match.status = status
    if psn_match_id is not UNSET:
        match.psn_match_id = psn_match_id or None
    if round_no is not None:
        match.round = round_no

    if winner_id is not UNSET and winner_id is not None:
        if winner_id not in (match.player1_id, match.player2_id):
            raise MatchError("Winner must be one of the match players")
        match.winner_id = winner_id
    elif match.status == Match.Status.COMPLETED and match.score1 is not None and match.score2 is not None:
        if match.score1 > match.score2:
            match.winner_id = match.player1_id
        elif match.score2 > match.score1:
            match.winner_id = match.player2_id
        else:
            match.winner_id = None  # مساوی

    match.save()
    return match


# ───────────────────────── تایید نتیجه با PSN ─────────────────────────
def _played_at(entry) -> Optional[datetime]:
    raw = entry.get("playedAt") or entry.get("date")
    if not raw:
        return None
    dt = parse_datetime(str(raw).replace("Z", "+00:00"))
    if dt is not None and timezone.is_naive(dt):
        dt = timezone.make_aware(dt, dt_timezone.utc)
    return dt


def played_recently(titles, game_key: str, now=None) -> bool:
    now = now or timezone.now()
    key = (game_key or "").lower()
    if not key:
        return False
    for entry in titles or []:
        name = str(entry.get("name") or entry.get("title") or "").lower()
        at = _played_at(entry)
        if at and at > now - RECENT_PLAY_WINDOW and key in name:
            return True
    return False


def _recent_titles(participant: Participant):
    profile = getattr(participant.user, "profile", None)
    token = profile.psn_refresh_token if profile else ""
    if not token:
        return None, None
    try:
        access = psn.refresh_access(token)["access_token"]
        return psn.get_played_titles(access, limit=10), None
    except psn.PsnError as e:
        logger.warning("verify-psn: PSN lookup failed participant=%s: %s", participant.pk, e)
        return None, str(e)


def verify_match_with_psn(match: Match) -> dict:
    """
    اولین بازیکن (player1 قبل از player2) که در دو ساعت اخیر بازی مسابقه را
    اجرا کرده برنده اعلام می‌شود.
    """
    results = {}
    decided = None
    game_key = match.tournament.game or match.tournament.title

    for slot, participant in (("player1", match.player1), ("player2", match.player2)):
        titles, error = _recent_titles(participant)
        if error:
            results[f"{slot}Error"] = error
        if titles is not None:
            results[slot] = titles
        if decided is None and played_recently(titles, game_key):
            decided = participant

    if decided is None:
        return {"success": False, "message": "Unable to determine winner from recent PSN activity",
                "results": results}

    Match.objects.filter(pk=match.pk).update(status=Match.Status.COMPLETED, winner=decided)
    match.refresh_from_db()

    advance = advance_winner(match)
    return {"success": True, "winner": decided.pk, "final": advance.get("final", False)}


def advance_winner(match: Match) -> dict:
    """اگر مسابقه فقط همین یک بازی را داشته باشد، نهایی‌سازی خودکار با کل جایزه برای نفر اول."""
    if not match.winner_id:
        return {"success": False, "message": "Match has no winner"}

    tournament = match.tournament
    if tournament.matches.count() > 1:
        return {"success": True, "final": False}

    try:
        finalize_tournament(tournament.pk, [{"position": 1, "prize": tournament.prize_pool}])
    except AlreadyFinalized:
        return {"success": True, "final": True}
    except TournamentError as e:
        logger.warning("advance_winner: auto finalize failed tournament=%s: %s", tournament.pk, e.message)
        return {"success": False, "final": False, "message": e.message}
    return {"success": True, "final": True}
