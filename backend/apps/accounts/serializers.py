# apps/accounts/serializers.py
from rest_framework import serializers
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from .authentication import is_revoked
from .models import User


class UserSerializer(serializers.ModelSerializer):
    role = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = (
            "id",
            "email",
            "phone",
            "first_name",
            "last_name",
            "role",
            "is_active",
            "created_at"
        )
        read_only_fields = ("id", "email", "is_active", "created_at")


class LoginSerializer(TokenObtainPairSerializer):
    """
    Email + password login. The role is embedded in the token and echoed in
    the response so clients can route to the store or driver app.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = user.role
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data["role"] = self.user.role
        data["user_id"] = self.user.id
        return data


class PushTokenSerializer(serializers.Serializer):
    push_token = serializers.CharField(max_length=255, allow_blank=True)


class RefreshSerializer(TokenRefreshSerializer):
    """
    Refresh that refuses tokens revoked at logout.
    """

    def validate(self, attrs):
        try:
            refresh = RefreshToken(attrs["refresh"])
        except TokenError as e:
            raise InvalidToken(e.args[0])
        if is_revoked(refresh):
            raise InvalidToken("This session has been logged out.")
        return super().validate(attrs)
