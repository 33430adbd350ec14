from django.urls import path

from wallet.views import (Payment4DepositView, Payment4VerifyView, WalletView, ZarrinpalDepositView,
                          ZarrinpalVerifyView)

urlpatterns = [
    path("", WalletView.as_view(), name="summary"),
    path("deposit/zarrinpal/", ZarrinpalDepositView.as_view(), name="deposit-zarrinpal"),
    path("deposit/payment4/", Payment4DepositView.as_view(), name="deposit-payment4"),
    path("verify/zarrinpal/", ZarrinpalVerifyView.as_view(), name="verify-zarrinpal"),
    path("verify/payment4/", Payment4VerifyView.as_view(), name="verify-payment4"),
]
