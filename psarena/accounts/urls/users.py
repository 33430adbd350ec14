from django.urls import path

from accounts.views import LinkPsnAPIView, UserProfileAPIView

urlpatterns = [
    path("link-psn/", LinkPsnAPIView.as_view(), name="link-psn"),
    path("profile/<int:user_id>/", UserProfileAPIView.as_view(), name="profile"),
]
