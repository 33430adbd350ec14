from django.contrib import admin
from django.urls import path, include, re_path

from .views import health, not_found

urlpatterns = [
    path("admin/", admin.site.urls),

    # -------- API --------
    path("api/health/", health, name="health"),
    path("api/auth/", include(("accounts.urls.auth", "auth"), namespace="auth")),
    path("api/otp/", include(("accounts.urls.otp", "otp"), namespace="otp")),
    path("api/users/", include(("accounts.urls.users", "users"), namespace="users")),

    path("api/tournaments/", include(("tournaments.urls.public", "tournaments"), namespace="tournaments")),
    path("api/matches/", include(("tournaments.urls.matches", "matches"), namespace="matches")),
    path("api/admin/tournaments/", include(("tournaments.urls.admin", "admin-tournaments"), namespace="admin-tournaments")),

    path("api/wallet/", include(("wallet.urls.wallet", "wallet"), namespace="wallet")),
    path("api/admin/transactions/", include(("wallet.urls.admin", "admin-transactions"), namespace="admin-transactions")),

    re_path(r"^api/.*$", not_found),
]
