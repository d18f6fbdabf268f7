import logging

from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission

from .exceptions import IdentityError
from .jwt_utils import validate_jwt_token

logger = logging.getLogger(__name__)


class Identity:
    """The authenticated caller. Passed explicitly into chat services."""

    is_authenticated = True
    is_anonymous = False

    def __init__(self, user_id, claims=None):
        if not user_id:
            raise IdentityError()
        self.user_id = str(user_id)
        self.claims = claims or {}

    def __eq__(self, other):
        return isinstance(other, Identity) and other.user_id == self.user_id

    def __hash__(self):
        return hash(self.user_id)

    def __str__(self):
        return self.user_id


def identity_from_token(token):
    """
    Verify a bearer token and return the caller's Identity.

    Raises:
        IdentityError: If the token is missing, invalid, expired or has no subject.
    """
    if not token:
        raise IdentityError()
    try:
        payload = validate_jwt_token(token)
    except Exception as e:
        logger.error("Error while validating user token", extra={"error": str(e)})
        raise IdentityError(str(e))
    return Identity(payload.get('sub'), payload)


class JWTAuthentication(BaseAuthentication):
    def authenticate(self, request):
        """
        Authenticate a request using the JWT in the Authorization header.

        Requests without the header stay anonymous so the permission layer
        can answer 401; a malformed or invalid token fails right here. On
        success the caller's id is also attached as ``request.user_id``.
        """
        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            return None
        if not auth_header.startswith("Bearer "):
            raise IdentityError("Wrong token format. Expected 'Bearer token'")

        identity = identity_from_token(auth_header.split(" ", 1)[1].strip())
        request.user_id = identity.user_id
        return (identity, None)

    def authenticate_header(self, request):
        return 'Bearer'


class IsIdentified(BasePermission):
    """Allows access only to requests carrying a verified identity."""

    def has_permission(self, request, view):
        return isinstance(request.user, Identity)
