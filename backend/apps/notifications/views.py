# apps/notifications/views.py
from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from .serializers import NotificationSerializer


class MyNotificationListAPIView(generics.ListAPIView):
    """
    Notification history of the logged-in store or driver.
    """
    permission_classes = [IsAuthenticated]
    serializer_class = NotificationSerializer

    def get_queryset(self):
        return self.request.user.notifications.all()
