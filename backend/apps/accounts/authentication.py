# apps/accounts/authentication.py
import time

from django.core.cache import cache
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, AuthenticationFailed


def _blocklist_key(jti):
    return f"blocklist:{jti}"


def revoke_token(token):
    """
    Blocks a token (access or refresh) until it would expire anyway.
    """
    ttl = int(token["exp"] - time.time())
    if ttl > 0:
        cache.set(_blocklist_key(token["jti"]), "true", timeout=ttl)


def is_revoked(token):
    jti = token.get("jti")
    return bool(jti and cache.get(_blocklist_key(jti)))


class SecureJWTAuthentication(JWTAuthentication):
    """
    Bearer JWT auth that honours logout (cache blocklist keyed by jti)
    and refuses tokens of deactivated accounts.
    """
    def get_validated_token(self, raw_token):
        try:
            validated_token = super().get_validated_token(raw_token)
        except InvalidToken:
            raise InvalidToken("Token is invalid or expired")

        if is_revoked(validated_token):
            raise AuthenticationFailed("This session has been logged out.")

        return validated_token
