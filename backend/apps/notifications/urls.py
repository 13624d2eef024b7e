# apps/notifications/urls.py
from django.urls import path
from .views import MyNotificationListAPIView

urlpatterns = [
    path("", MyNotificationListAPIView.as_view()),
]
