"""
ASGI entrypoint for farah.

HTTP goes to Django; ``/ws/chat/`` goes to the chat consumer behind origin
checks and token authentication. Run with ``daphne farah.asgi:application``.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'farah.settings')

# Initialise Django before importing anything that touches models.
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from websocket_chat.middleware import WebSocketAuthMiddleware  # noqa: E402
from websocket_chat.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": AllowedHostsOriginValidator(
        WebSocketAuthMiddleware(URLRouter(websocket_urlpatterns))
    ),
})
