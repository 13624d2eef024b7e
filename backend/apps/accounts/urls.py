# apps/accounts/urls.py
from django.urls import path
from .views import (
    LoginAPIView,
    RefreshAPIView,
    MeAPIView,
    PushTokenAPIView,
    LogoutAPIView,
)

urlpatterns = [
    path("login", LoginAPIView.as_view()),
    path("refresh", RefreshAPIView.as_view(), name='token_refresh'),
    path("me", MeAPIView.as_view()),
    path("push-token", PushTokenAPIView.as_view()),
    path("logout", LogoutAPIView.as_view()),
]
