from django.urls import path

from tournaments.views import (AdminFinalizeView, AdminMatchDetailView, AdminMatchListCreateView,
                               AdminParticipantsView, AdminTournamentDetailView,
                               AdminTournamentListCreateView, AdminTournamentStatusView)

urlpatterns = [
    path("", AdminTournamentListCreateView.as_view(), name="list"),
    path("<int:pk>/", AdminTournamentDetailView.as_view(), name="detail"),
    path("<int:pk>/status/", AdminTournamentStatusView.as_view(), name="status"),
    path("<int:pk>/participants/", AdminParticipantsView.as_view(), name="participants"),
    path("<int:pk>/matches/", AdminMatchListCreateView.as_view(), name="matches"),
    path("<int:pk>/matches/<int:match_id>/", AdminMatchDetailView.as_view(), name="match-detail"),
    path("<int:pk>/finalize/", AdminFinalizeView.as_view(), name="finalize"),
]
