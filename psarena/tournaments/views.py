# tournaments/views.py
import logging
import math

from django.db.models import Count, Q, ProtectedError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdmin
from psarena.exceptions import first_message
from wallet.serializers import TransactionSerializer
from wallet.services import InsufficientFunds, finalize_tournament
from .exceptions import TournamentError
from .models import Match, Participant, Tournament
from .serializers import (FinalizeSerializer, MatchCreateSerializer, MatchSerializer, MatchUpdateSerializer,
                          ParticipantSerializer, StatusSerializer, TournamentPublicSerializer,
                          TournamentWriteSerializer)
from .services.bracket_service import UNSET, create_match, update_match, verify_match_with_psn
from .services.registration_service import join_tournament

logger = logging.getLogger(__name__)

PUBLIC_STATUSES = (Tournament.Status.PUBLISHED, Tournament.Status.COMPLETED)


def _error(message, code=status.HTTP_400_BAD_REQUEST, **extra):
    return Response({"success": False, "message": message, **extra}, status=code)


def _with_counts(qs):
    return qs.select_related("created_by", "created_by__profile").annotate(
        participants_count=Count("participants", filter=Q(participants__status=Participant.Status.APPROVED))
    )


def _int_param(value, default, lo=None, hi=None):
    try:
        n = int(value)
    except (TypeError, ValueError):
        n = default
    if lo is not None:
        n = max(lo, n)
    if hi is not None:
        n = min(hi, n)
    return n


# ---------- Public ----------

class TournamentListView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        qs = _with_counts(Tournament.objects.filter(status__in=PUBLIC_STATUSES)).order_by("start_at")
        return Response({"success": True, "items": TournamentPublicSerializer(qs, many=True).data})


class TournamentDetailView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, pk):
        t = _with_counts(Tournament.objects.filter(pk=pk, status__in=PUBLIC_STATUSES)).first()
        if not t:
            return _error("Tournament not found", status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "tournament": TournamentPublicSerializer(t).data})


class JoinTournamentView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        try:
            participant = join_tournament(pk, request.user)
        except Tournament.DoesNotExist:
            return _error("Tournament not found", status.HTTP_404_NOT_FOUND)
        except InsufficientFunds as e:
            return _error(str(e))
        except TournamentError as e:
            return _error(e.message, e.status_code)

        data = {"success": True, "participant": ParticipantSerializer(participant).data}
        if participant.entry_transaction_id:
            data["transaction"] = TransactionSerializer(participant.entry_transaction).data
        return Response(data, status=status.HTTP_201_CREATED)


# ---------- Admin: tournaments ----------

class AdminTournamentListCreateView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request):
        q = (request.query_params.get("q") or "").strip()
        st = request.query_params.get("status")
        page = _int_param(request.query_params.get("page"), 1, lo=1)
        page_size = _int_param(request.query_params.get("pageSize"), 20, lo=1, hi=100)

        qs = Tournament.objects.all()
        if q:
            qs = qs.filter(Q(title__icontains=q) | Q(game__icontains=q))
        if st in Tournament.Status.values:
            qs = qs.filter(status=st)

        total = qs.count()
        start = (page - 1) * page_size
        items = _with_counts(qs.order_by("-created_at"))[start:start + page_size]
        return Response({
            "items": TournamentPublicSerializer(items, many=True).data,
            "page": page,
            "pageSize": page_size,
            "total": total,
            "totalPages": math.ceil(total / page_size),
        })

    def post(self, request):
        ser = TournamentWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        t = ser.save(created_by=request.user)
        logger.info("Tournament created id=%s by=%s", t.pk, request.user.pk)
        return Response({"success": True, "tournament": TournamentPublicSerializer(t).data},
                        status=status.HTTP_201_CREATED)


class AdminTournamentDetailView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request, pk):
        t = _with_counts(Tournament.objects.filter(pk=pk)).first()
        if not t:
            return _error("Not found", status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "tournament": TournamentPublicSerializer(t).data})

    def put(self, request, pk):
        t = get_object_or_404(Tournament, pk=pk)
        ser = TournamentWriteSerializer(t, data=request.data)
        ser.is_valid(raise_exception=True)
        t = ser.save()
        return Response({"success": True, "tournament": TournamentPublicSerializer(t).data})

    def delete(self, request, pk):
        t = get_object_or_404(Tournament, pk=pk)
        try:
            t.delete()
        except ProtectedError:
            # تراکنش‌های مالی به مسابقه ارجاع دارند
            return _error("Tournament has ledger transactions; cancel it instead", status.HTTP_409_CONFLICT)
        return Response({"success": True})


class AdminTournamentStatusView(APIView):
    permission_classes = [IsAdmin]

    def patch(self, request, pk):
        ser = StatusSerializer(data=request.data)
        if not ser.is_valid():
            return _error("Invalid status")
        t = get_object_or_404(Tournament, pk=pk)
        new_status = ser.validated_data["status"]
        if new_status == Tournament.Status.COMPLETED and t.status != Tournament.Status.COMPLETED:
            return _error("Use finalize to complete a tournament")
        t.status = new_status
        t.save(update_fields=["status", "updated_at"])
        return Response({"success": True, "tournament": TournamentPublicSerializer(t).data})


class AdminParticipantsView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request, pk):
        get_object_or_404(Tournament, pk=pk)
        qs = Participant.objects.filter(tournament_id=pk).select_related("user", "user__profile").order_by("joined_at")
        return Response({"success": True, "participants": ParticipantSerializer(qs, many=True).data})


# ---------- Admin: matches ----------

def _matches_qs():
    return Match.objects.select_related(
        "player1__user__profile", "player2__user__profile", "winner__user__profile",
    )


class AdminMatchListCreateView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request, pk):
        get_object_or_404(Tournament, pk=pk)
        qs = _matches_qs().filter(tournament_id=pk).order_by("round", "created_at")
        return Response({"success": True, "matches": MatchSerializer(qs, many=True).data})

    def post(self, request, pk):
        t = get_object_or_404(Tournament, pk=pk)
        ser = MatchCreateSerializer(data=request.data)
        if not ser.is_valid():
            return _error(first_message(ser.errors))
        data = ser.validated_data
        try:
            match = create_match(t, data["player1Id"], data["player2Id"], data.get("round") or 1,
                                 data.get("psnMatchId"))
        except TournamentError as e:
            return _error(e.message, e.status_code)
        match = _matches_qs().get(pk=match.pk)
        return Response({"success": True, "match": MatchSerializer(match).data}, status=status.HTTP_201_CREATED)


class AdminMatchDetailView(APIView):
    permission_classes = [IsAdmin]

    def put(self, request, pk, match_id):
        match = Match.objects.filter(pk=match_id, tournament_id=pk).first()
        if not match:
            return _error("Match not found", status.HTTP_404_NOT_FOUND)

        ser = MatchUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        try:
            update_match(
                match,
                score1=data.get("score1", UNSET),
                score2=data.get("score2", UNSET),
                status=data.get("status"),
                psn_match_id=data.get("psnMatchId", UNSET),
                round_no=data.get("round"),
                winner_id=data.get("winnerId", UNSET),
            )
        except TournamentError as e:
            return _error(e.message, e.status_code)
        match = _matches_qs().get(pk=match.pk)
        return Response({"success": True, "match": MatchSerializer(match).data})


# ---------- Admin: finalize ----------

class AdminFinalizeView(APIView):
    permission_classes = [IsAdmin]

    def post(self, request, pk):
        get_object_or_404(Tournament, pk=pk)
        ser = FinalizeSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        distribution = ser.validated_data.get("prizeDistribution")
        if distribution is not None:
            distribution = [dict(item) for item in distribution]

        try:
            result = finalize_tournament(pk, distribution)
        except TournamentError as e:
            return _error(e.message, e.status_code)

        rankings = [
            {
                "position": r["position"],
                "participantId": r["participant"].pk,
                "userId": r["participant"].user_id,
                "wins": r["wins"],
                "points": r["points"],
            }
            for r in result["rankings"]
        ]
        txs = result["transactions"]
        return Response({
            "success": True,
            "message": f"Tournament finalized. {len(txs)} prize(s) distributed.",
            "rankings": rankings,
            "transactions": TransactionSerializer(txs, many=True).data,
        })


# ---------- Matches ----------

class VerifyMatchPsnView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        match = (
            Match.objects.select_related("tournament", "player1__user__profile", "player2__user__profile")
            .filter(pk=pk).first()
        )
        if not match:
            return _error("Match not found", status.HTTP_404_NOT_FOUND)
        if match.status == Match.Status.COMPLETED:
            return _error("Match already completed")

        return Response(verify_match_with_psn(match))
