from django.urls import path

from wallet.views import AdminTransactionDetailView, AdminTransactionListView

urlpatterns = [
    path("", AdminTransactionListView.as_view(), name="list"),
    path("<uuid:pk>/", AdminTransactionDetailView.as_view(), name="detail"),
]
