from django.urls import path

from tournaments.views import JoinTournamentView, TournamentDetailView, TournamentListView

urlpatterns = [
    path("", TournamentListView.as_view(), name="list"),
    path("<int:pk>/", TournamentDetailView.as_view(), name="detail"),
    path("<int:pk>/join/", JoinTournamentView.as_view(), name="join"),
]
