from django.contrib import admin

from .models import Match, Participant, Tournament


class ParticipantInline(admin.TabularInline):
    model = Participant
    extra = 0
    raw_id_fields = ("user", "entry_transaction")
    readonly_fields = ("joined_at",)


@admin.register(Tournament)
class TournamentAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "game", "status", "currency", "entry_fee", "prize_pool", "max_players", "start_at")
    list_filter = ("status", "currency", "game")
    search_fields = ("title", "game")
    readonly_fields = ("finalized_at", "created_at", "updated_at")
    raw_id_fields = ("created_by",)
    inlines = [ParticipantInline]


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    list_display = ("id", "tournament", "user", "status", "joined_at")
    list_filter = ("status",)
    search_fields = ("user__email", "user__profile__psn_id", "tournament__title")
    raw_id_fields = ("tournament", "user", "entry_transaction")


@admin.register(Match)
class MatchAdmin(admin.ModelAdmin):
    list_display = ("id", "tournament", "round", "player1", "player2", "score1", "score2", "winner", "status")
    list_filter = ("status", "round")
    raw_id_fields = ("tournament", "player1", "player2", "winner")
