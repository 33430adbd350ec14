from django.urls import path

from tournaments.views import VerifyMatchPsnView

urlpatterns = [
    path("<int:pk>/verify-psn/", VerifyMatchPsnView.as_view(), name="verify-psn"),
]
