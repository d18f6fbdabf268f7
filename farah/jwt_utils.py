"""
JWT utilities for the farah project.

Tokens are issued by the hosted identity provider in production; this
module verifies them and can mint tokens signed with the same secret for
tests and local development.
"""

import time

import jwt
from django.conf import settings


class JWTManager:
    """
    JWT Manager for token generation and validation.
    """

    def __init__(self):
        # Don't access settings immediately
        self._secret = None
        self._algorithm = None

    def _get_secret(self):
        """Get the signing secret, with lazy loading."""
        if self._secret is None:
            self._secret = getattr(settings, 'JWT_SECRET', 'farah-development-jwt-secret')
        return self._secret

    def _get_algorithm(self):
        """Get the JWT algorithm, with lazy loading."""
        if self._algorithm is None:
            self._algorithm = getattr(settings, 'JWT_ALGORITHM', 'HS256')
        return self._algorithm

    def generate_token(self, user_id, expires_in_hours=24, **claims):
        """
        Generate a JWT token for the given user.

        Args:
            user_id (str): The user ID to include in the token
            expires_in_hours (int): Token expiration time in hours
            **claims: Extra claims merged into the payload

        Returns:
            str: JWT token string
        """
        now = int(time.time())
        payload = {
            'sub': user_id,
            'iat': now,
            'exp': now + (expires_in_hours * 3600),
        }
        audience = getattr(settings, 'JWT_AUDIENCE', None)
        issuer = getattr(settings, 'JWT_ISSUER', None)
        if audience:
            payload['aud'] = audience
        if issuer:
            payload['iss'] = issuer
        payload.update(claims)

        return jwt.encode(payload, self._get_secret(), algorithm=self._get_algorithm())

    def validate_token(self, token):
        """
        Validate a JWT token and extract the payload.

        Raises:
            jwt.InvalidTokenError: If token is invalid or expired
        """
        options = {}
        kwargs = {}
        audience = getattr(settings, 'JWT_AUDIENCE', None)
        issuer = getattr(settings, 'JWT_ISSUER', None)
        if audience:
            kwargs['audience'] = audience
        else:
            options['verify_aud'] = False
        if issuer:
            kwargs['issuer'] = issuer

        try:
            return jwt.decode(
                token,
                self._get_secret(),
                algorithms=[self._get_algorithm()],
                options=options,
                **kwargs,
            )
        except jwt.ExpiredSignatureError:
            raise jwt.InvalidTokenError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")


# Global JWT manager instance - create lazily
_jwt_manager = None


def _get_jwt_manager():
    """Get the global JWT manager instance, creating it if needed."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def generate_test_token(user_id, expires_in_hours=24, **claims):
    """Generate a test JWT token for the given user ID."""
    return _get_jwt_manager().generate_token(user_id, expires_in_hours, **claims)


def validate_jwt_token(token):
    """Validate a JWT token and return the payload."""
    return _get_jwt_manager().validate_token(token)

