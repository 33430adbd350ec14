from django.urls import path

from accounts.views import CheckOtpAPIView, SendOtpAPIView, VerifyOtpAPIView

urlpatterns = [
    path("send/", SendOtpAPIView.as_view(), name="send"),
    path("verify/", VerifyOtpAPIView.as_view(), name="verify"),
    path("check/", CheckOtpAPIView.as_view(), name="check"),
]
