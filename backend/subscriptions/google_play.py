"""Google Play Developer API client for subscription purchase verification."""

import base64
import json
import logging
import time
from urllib.parse import quote

import jwt
import requests
from django.conf import settings

from .exceptions import SubscriptionConfigError, SubscriptionProviderError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_PLAY_API = "https://androidpublisher.googleapis.com/androidpublisher/v3/applications"
ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"

REQUEST_TIMEOUT = 20


def _decode(response, default_message):
    """JSON body of a Google response; a non-JSON body is a provider error."""
    try:
        data = response.json()
    except ValueError:
        logger.warning("Google returned a non-JSON body (HTTP %s)", response.status_code)
        raise SubscriptionProviderError(default_message, status_code=response.status_code)
    if not isinstance(data, dict):
        raise SubscriptionProviderError(default_message, status_code=response.status_code)
    return data


def parse_service_account(raw=None):
    """Service account JSON given either raw or base64-encoded. None if unusable."""
    raw = raw if raw is not None else settings.GOOGLE_PLAY_SERVICE_ACCOUNT_JSON
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        pass
    try:
        return json.loads(base64.b64decode(raw).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None


class GooglePlayService:
    def __init__(self, service_account=None):
        self.service_account = service_account or parse_service_account()
        if not self.service_account:
            raise SubscriptionConfigError("Missing Google service account")

    @property
    def token_uri(self):
        return self.service_account.get("token_uri") or GOOGLE_TOKEN_URL

    def build_assertion(self, now=None):
        """RS256-signed JWT assertion for the jwt-bearer grant."""
        now = int(now or time.time())
        payload = {
            "iss": self.service_account["client_email"],
            "scope": ANDROID_PUBLISHER_SCOPE,
            "aud": self.token_uri,
            "iat": now,
            "exp": now + 3600,
        }
        return jwt.encode(payload, self.service_account["private_key"], algorithm="RS256")

    def get_access_token(self):
        try:
            response = requests.post(
                self.token_uri,
                data={
                    "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                    "assertion": self.build_assertion(),
                },
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise SubscriptionProviderError(f"Google unreachable: {e}") from e

        data = _decode(response, "Failed to get Google access token")
        if not response.ok:
            message = data.get("error_description") or data.get("error") or "Failed to get Google access token"
            raise SubscriptionProviderError(message, status_code=response.status_code)
        if not data.get("access_token"):
            raise SubscriptionProviderError("Failed to get Google access token", status_code=response.status_code)
        return data["access_token"]

    def get_subscription(self, package_name, product_id, purchase_token):
        url = (
            f"{GOOGLE_PLAY_API}/{quote(package_name, safe='')}/purchases/subscriptions/"
            f"{quote(product_id, safe='')}/tokens/{quote(purchase_token, safe='')}"
        )
        try:
            response = requests.get(
                url,
                headers={"Authorization": f"Bearer {self.get_access_token()}"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise SubscriptionProviderError(f"Google unreachable: {e}") from e

        data = _decode(response, "Failed to verify Google Play subscription")
        if not response.ok:
            error = data.get("error")
            message = error.get("message") if isinstance(error, dict) else error
            message = message or "Failed to verify Google Play subscription"
            raise SubscriptionProviderError(message, status_code=response.status_code)
        return data
