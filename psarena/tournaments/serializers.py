import jdatetime
from django.utils import timezone
from rest_framework import serializers

from wallet.services import validate_distribution
from .exceptions import InvalidDistribution
from .models import Match, Participant, Tournament


def _to_jalali_str(dt):
    if not dt:
        return None
    jd = jdatetime.datetime.fromgregorian(datetime=timezone.localtime(dt))
    return f"{jd.year:04d}/{jd.month:02d}/{jd.day:02d} {jd.hour:02d}:{jd.minute:02d}"


def _user_summary(user):
    if user is None:
        return None
    profile = getattr(user, "profile", None)
    return {
        "id": user.id,
        "name": profile.name if profile else user.get_username(),
        "psnId": profile.psn_id if profile else None,
    }


# -------------------------------------------------
# نمایش عمومی مسابقه
# -------------------------------------------------
class TournamentPublicSerializer(serializers.ModelSerializer):
    imageUrl = serializers.CharField(source="image_url", read_only=True)
    entryFee = serializers.IntegerField(source="entry_fee", read_only=True)
    prizePool = serializers.IntegerField(source="prize_pool", read_only=True)
    prizeDistribution = serializers.JSONField(source="prize_distribution", read_only=True)
    maxPlayers = serializers.IntegerField(source="max_players", read_only=True)
    startAt = serializers.DateTimeField(source="start_at", read_only=True)
    startAtJalali = serializers.SerializerMethodField()
    createdBy = serializers.SerializerMethodField()
    participantsCount = serializers.SerializerMethodField()
    finalizedAt = serializers.DateTimeField(source="finalized_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Tournament
        fields = [
            "id", "title", "game", "description", "rules", "imageUrl",
            "entryFee", "prizePool", "currency", "prizeDistribution",
            "maxPlayers", "startAt", "startAtJalali", "status",
            "createdBy", "participantsCount", "finalizedAt", "createdAt",
        ]

    def get_startAtJalali(self, obj): return _to_jalali_str(obj.start_at)
    def get_createdBy(self, obj):     return _user_summary(obj.created_by)

    def get_participantsCount(self, obj):
        annotated = getattr(obj, "participants_count", None)
        return annotated if annotated is not None else obj.participants.count()


# -------------------------------------------------
# ایجاد / ویرایش (ادمین)
# -------------------------------------------------
class PrizeItemSerializer(serializers.Serializer):
    position = serializers.IntegerField(min_value=1)
    prize = serializers.IntegerField(min_value=0)
    percentage = serializers.FloatField(min_value=0, max_value=100, required=False)


class TournamentWriteSerializer(serializers.ModelSerializer):
    imageUrl = serializers.URLField(source="image_url", required=False, allow_null=True, allow_blank=True)
    entryFee = serializers.IntegerField(source="entry_fee", min_value=0)
    prizePool = serializers.IntegerField(source="prize_pool", min_value=0)
    prizeDistribution = serializers.JSONField(source="prize_distribution", required=False, allow_null=True)
    maxPlayers = serializers.IntegerField(source="max_players", min_value=2, max_value=1024)
    startAt = serializers.DateTimeField(source="start_at")
    description = serializers.CharField(max_length=2000, required=False, allow_blank=True, allow_null=True)
    rules = serializers.CharField(max_length=5000, required=False, allow_blank=True, allow_null=True)

    class Meta:
        model = Tournament
        fields = [
            "title", "game", "description", "rules", "imageUrl",
            "entryFee", "prizePool", "currency", "prizeDistribution",
            "maxPlayers", "startAt",
        ]
        extra_kwargs = {
            "title": {"min_length": 3, "max_length": 100},
            "game": {"min_length": 2, "max_length": 50},
        }

    def validate_description(self, value): return value or ""
    def validate_rules(self, value):       return value or ""
    def validate_imageUrl(self, value):    return value or None

    def validate_prizeDistribution(self, value):
        if not value:
            return []
        items = PrizeItemSerializer(data=value, many=True)
        if not items.is_valid():
            raise serializers.ValidationError("Invalid prize distribution entry")
        return [dict(item) for item in items.validated_data]

    def validate(self, attrs):
        # در ویرایش، جدول جوایز قبلی باید با prizePool جدید هم سازگار باشد
        provided = "prize_distribution" in attrs
        distribution = attrs.get("prize_distribution")
        if not provided and self.instance is not None:
            distribution = self.instance.prize_distribution
        prize_pool = attrs.get("prize_pool", getattr(self.instance, "prize_pool", None))
        if distribution:
            try:
                checked = validate_distribution(distribution, prize_pool)
            except InvalidDistribution as e:
                raise serializers.ValidationError({"prizeDistribution": [e.message]})
            if provided:
                attrs["prize_distribution"] = checked
        return attrs


class StatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Tournament.Status.choices,
                                     error_messages={"invalid_choice": "Invalid status"})


# -------------------------------------------------
# شرکت‌کننده و بازی
# -------------------------------------------------
class ParticipantSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()
    joinedAt = serializers.DateTimeField(source="joined_at", read_only=True)
    tournamentId = serializers.IntegerField(source="tournament_id", read_only=True)

    class Meta:
        model = Participant
        fields = ["id", "tournamentId", "status", "joinedAt", "user"]

    def get_user(self, obj): return _user_summary(obj.user)


class MatchSerializer(serializers.ModelSerializer):
    tournamentId = serializers.IntegerField(source="tournament_id", read_only=True)
    player1Id = serializers.IntegerField(source="player1_id", read_only=True)
    player2Id = serializers.IntegerField(source="player2_id", read_only=True)
    winnerId = serializers.IntegerField(source="winner_id", read_only=True, allow_null=True)
    player1 = ParticipantSerializer(read_only=True)
    player2 = ParticipantSerializer(read_only=True)
    winner = ParticipantSerializer(read_only=True, allow_null=True)
    psnMatchId = serializers.CharField(source="psn_match_id", read_only=True, allow_null=True)
    scheduledAt = serializers.DateTimeField(source="scheduled_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Match
        fields = [
            "id", "tournamentId", "round", "status", "score1", "score2",
            "player1Id", "player2Id", "winnerId", "player1", "player2", "winner",
            "psnMatchId", "scheduledAt", "createdAt",
        ]


class MatchCreateSerializer(serializers.Serializer):
    player1Id = serializers.IntegerField(error_messages={"required": "Both players required"})
    player2Id = serializers.IntegerField(error_messages={"required": "Both players required"})
    round = serializers.IntegerField(min_value=1, required=False, default=1)
    psnMatchId = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)

    def validate(self, attrs):
        if attrs["player1Id"] == attrs["player2Id"]:
            raise serializers.ValidationError("Cannot match player against themselves")
        return attrs


class MatchUpdateSerializer(serializers.Serializer):
    score1 = serializers.IntegerField(required=False, allow_null=True)
    score2 = serializers.IntegerField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=Match.Status.choices, required=False)
    psnMatchId = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)
    round = serializers.IntegerField(min_value=1, required=False)
    winnerId = serializers.IntegerField(required=False, allow_null=True)


class FinalizeSerializer(serializers.Serializer):
    prizeDistribution = PrizeItemSerializer(many=True, required=False)
