from django.conf import settings
from django.core.validators import MaxValueValidator, MinLengthValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from wallet.models import Currency


# -----------------------------
# ۱. مسابقه
# -----------------------------
class Tournament(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "پیش‌نویس"
        PUBLISHED = "PUBLISHED", "منتشر شده"
        COMPLETED = "COMPLETED", "پایان یافته"
        CANCELED = "CANCELED", "لغو شده"

    title = models.CharField(max_length=100, validators=[MinLengthValidator(3)])
    game = models.CharField(max_length=50, validators=[MinLengthValidator(2)])
    description = models.TextField(max_length=2000, blank=True, default="")
    rules = models.TextField(max_length=5000, blank=True, default="")
    image_url = models.URLField(max_length=500, null=True, blank=True)

    entry_fee = models.PositiveIntegerField(default=0)
    prize_pool = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=8, choices=Currency.choices, default=Currency.TOMAN)
    # [{"position": 1, "prize": 500000, "percentage": 50}, ...]
    prize_distribution = models.JSONField(default=list, blank=True)

    max_players = models.PositiveIntegerField(validators=[MinValueValidator(2), MaxValueValidator(1024)])
    start_at = models.DateTimeField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT, db_index=True)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="created_tournaments")
    finalized_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_at"]
        verbose_name = "مسابقه"
        verbose_name_plural = "مسابقات"

    def __str__(self):
        return f"{self.title} ({self.game})"

    @property
    def is_public(self) -> bool:
        return self.status in (self.Status.PUBLISHED, self.Status.COMPLETED)

    def approved_count(self) -> int:
        return self.participants.filter(status=Participant.Status.APPROVED).count()

    def rankings(self) -> list:
        """
        هر برد در مسابقه‌ی COMPLETED: ۱ برد و ۳ امتیاز.
        ترتیب: برد، امتیاز، سپس زمان ثبت‌نام.
        """
        participants = list(
            self.participants.filter(status=Participant.Status.APPROVED)
            .select_related("user", "user__profile")
            .order_by("joined_at", "id")
        )
        stats = {p.id: {"participant": p, "wins": 0, "points": 0} for p in participants}

        winners = self.matches.filter(status=Match.Status.COMPLETED, winner__isnull=False).values_list(
            "winner_id", flat=True
        )
        for winner_id in winners:
            if winner_id in stats:
                stats[winner_id]["wins"] += 1
                stats[winner_id]["points"] += 3

        # sorted پایدار است، پس ترتیب ثبت‌نام حفظ می‌شود
        ranked = sorted(stats.values(), key=lambda s: (-s["wins"], -s["points"]))
        for idx, row in enumerate(ranked, start=1):
            row["position"] = idx
        return ranked


# -----------------------------
# ۲. شرکت‌کننده
# -----------------------------
class Participant(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "در انتظار"
        APPROVED = "APPROVED", "تایید شده"
        REJECTED = "REJECTED", "رد شده"

    tournament = models.ForeignKey(Tournament, on_delete=models.CASCADE, related_name="participants")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="participations")
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    entry_transaction = models.OneToOneField(
        "wallet.Transaction", null=True, blank=True, on_delete=models.SET_NULL, related_name="participant"
    )
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["joined_at"]
        verbose_name = "شرکت‌کننده"
        verbose_name_plural = "شرکت‌کنندگان"
        constraints = [
            models.UniqueConstraint(fields=["tournament", "user"], name="uniq_participant_per_tournament"),
        ]

    def __str__(self):
        return f"{self.user} @ {self.tournament_id} ({self.status})"


# -----------------------------
# ۳. بازی
# -----------------------------
class Match(models.Model):
    class Status(models.TextChoices):
        SCHEDULED = "SCHEDULED", "زمان‌بندی شده"
        IN_PROGRESS = "IN_PROGRESS", "در حال انجام"
        COMPLETED = "COMPLETED", "پایان یافته"
        CANCELED = "CANCELED", "لغو شده"

    tournament = models.ForeignKey(Tournament, on_delete=models.CASCADE, related_name="matches")
    player1 = models.ForeignKey(Participant, on_delete=models.CASCADE, related_name="matches_as_player1")
    player2 = models.ForeignKey(Participant, on_delete=models.CASCADE, related_name="matches_as_player2")
    winner = models.ForeignKey(Participant, null=True, blank=True, on_delete=models.SET_NULL, related_name="won_matches")

    round = models.PositiveIntegerField(default=1)
    score1 = models.IntegerField(null=True, blank=True)
    score2 = models.IntegerField(null=True, blank=True)
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.SCHEDULED)
    psn_match_id = models.CharField(max_length=128, null=True, blank=True)

    scheduled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["round", "created_at"]
        verbose_name = "بازی"
        verbose_name_plural = "بازی‌ها"
        constraints = [
            models.CheckConstraint(condition=~Q(player1=models.F("player2")), name="match_distinct_players"),
        ]

    def __str__(self):
        return f"R{self.round}: {self.player1_id} vs {self.player2_id}"

    def players(self):
        return [self.player1, self.player2]
