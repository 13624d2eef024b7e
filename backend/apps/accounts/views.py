from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.throttling import AnonRateThrottle
from rest_framework import status
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .authentication import revoke_token
from .serializers import UserSerializer, LoginSerializer, PushTokenSerializer, RefreshSerializer


class LoginThrottle(AnonRateThrottle):
    scope = 'login'


class LoginAPIView(TokenObtainPairView):
    """
    POST {email, password} -> {access, refresh, role, user_id}
    """
    serializer_class = LoginSerializer
    throttle_classes = [LoginThrottle]


class RefreshAPIView(TokenRefreshView):
    serializer_class = RefreshSerializer


class MeAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


class PushTokenAPIView(APIView):
    """
    Registers (or clears) the device token used for push notifications.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PushTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        request.user.push_token = serializer.validated_data["push_token"]
        request.user.save(update_fields=["push_token"])
        return Response({"success": True})


class LogoutAPIView(APIView):
    """
    Revokes the presented access token and, if given, the refresh token.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        if request.auth is not None:
            revoke_token(request.auth)

        refresh_token = request.data.get("refresh")
        if refresh_token:
            try:
                token = RefreshToken(refresh_token)
            except TokenError:
                return Response(
                    {"error": {"code": "invalid_token", "message": "Invalid refresh token"}},
                    status=status.HTTP_400_BAD_REQUEST
                )
            revoke_token(token)

        return Response({"status": "logged_out"})
