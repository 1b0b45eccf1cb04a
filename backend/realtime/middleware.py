"""WebSocket authentication middleware for JWT and Cookie-based auth."""

import logging
from urllib.parse import parse_qs

from channels.auth import get_user
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

User = get_user_model()
logger = logging.getLogger(__name__)


@database_sync_to_async
def get_user_for_token(raw_token):
    """Active, unblocked user for an access token, else AnonymousUser."""
    try:
        user_id = AccessToken(raw_token)["user_id"]
        user = User.objects.get(id=user_id)
    except (TokenError, KeyError, User.DoesNotExist) as e:
        logger.debug("JWT auth failed: %s", e)
        return AnonymousUser()

    if not user.is_active or user.admin_blocked:
        return AnonymousUser()
    return user


class JWTOrCookieAuthMiddleware(BaseMiddleware):
    """
    Authenticate WebSocket connections using either:
    1. JWT in querystring (?token=...) for the mobile apps
    2. The Django session cookie for browsers
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        params = parse_qs(scope.get("query_string", b"").decode())

        token_list = params.get("token")
        if token_list:
            scope["user"] = await get_user_for_token(token_list[0])
        elif "session" in scope:
            scope["user"] = await get_user(scope)
        else:
            scope["user"] = AnonymousUser()

        return await super().__call__(scope, receive, send)
