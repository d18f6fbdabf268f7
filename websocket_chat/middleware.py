import logging
from urllib.parse import parse_qs

from channels.middleware import BaseMiddleware

from farah.exceptions import IdentityError
from farah.identity import identity_from_token

logger = logging.getLogger(__name__)


class WebSocketAuthMiddleware(BaseMiddleware):
    """
    Resolves the caller's identity from the ``token`` query parameter.

    Connections without a valid token are closed with code 4001 before
    reaching the consumer.
    """

    async def __call__(self, scope, receive, send):
        query_string = scope.get('query_string', b'').decode()
        query_params = parse_qs(query_string)
        token = query_params.get('token', [None])[0]

        if not token:
            await send({
                'type': 'websocket.close',
                'code': 4001,
                'reason': 'Authentication token required'
            })
            return

        try:
            identity = identity_from_token(token)
        except IdentityError as e:
            logger.warning("WebSocket authentication failed", extra={"error": str(e.detail)})
            await send({
                'type': 'websocket.close',
                'code': 4001,
                'reason': 'Invalid authentication token'
            })
            return

        scope['user_id'] = identity.user_id
        scope['identity'] = identity

        return await super().__call__(scope, receive, send)

