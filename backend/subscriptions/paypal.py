"""PayPal Subscriptions REST API client."""

import logging
from decimal import Decimal

import requests
from django.conf import settings

from .exceptions import SubscriptionConfigError, SubscriptionProviderError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 20


class PayPalService:
    def __init__(self, client_id=None, client_secret=None, api_base=None):
        self.client_id = (client_id or settings.PAYPAL_CLIENT_ID or "").strip()
        self.client_secret = (client_secret or settings.PAYPAL_CLIENT_SECRET or "").strip()
        self.api_base = (api_base or settings.PAYPAL_API_BASE).rstrip("/")
        if not self.client_id or not self.client_secret:
            raise SubscriptionConfigError("Missing PayPal credentials")
        self._token = None

    # ---------------------- HTTP helpers ----------------------

    def _raise_for(self, response, default_message):
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        message = data.get("message") or data.get("error_description") or default_message
        logger.warning("PayPal error %s: %s", response.status_code, message)
        raise SubscriptionProviderError(message, status_code=response.status_code)

    def _json(self, response, default_message):
        try:
            return response.json()
        except ValueError:
            logger.warning("PayPal returned a non-JSON body (HTTP %s)", response.status_code)
            raise SubscriptionProviderError(default_message, status_code=response.status_code)

    def get_access_token(self):
        """OAuth client-credentials token, reused for the lifetime of this service."""
        if self._token:
            return self._token

        try:
            response = requests.post(
                f"{self.api_base}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise SubscriptionProviderError(f"PayPal unreachable: {e}") from e

        if not response.ok:
            self._raise_for(response, "Failed to get PayPal access token")
        data = self._json(response, "Failed to get PayPal access token")
        if not isinstance(data, dict) or not data.get("access_token"):
            raise SubscriptionProviderError("Failed to get PayPal access token", status_code=response.status_code)
        self._token = data["access_token"]
        return self._token

    def _request(self, method, path, default_message, json=None):
        headers = {
            "Authorization": f"Bearer {self.get_access_token()}",
            "Content-Type": "application/json",
        }
        try:
            response = requests.request(
                method,
                f"{self.api_base}{path}",
                json=json,
                headers=headers,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise SubscriptionProviderError(f"PayPal unreachable: {e}") from e

        if not response.ok:
            self._raise_for(response, default_message)
        return self._json(response, default_message)

    # ---------------------- Catalog / plans ----------------------

    def create_product(self, name, description, category="SOFTWARE", product_type="SERVICE"):
        return self._request("POST", "/v1/catalogs/products", "Failed to create product", json={
            "name": name,
            "description": description,
            "type": product_type,
            "category": category,
        })

    def create_plan(self, product_id, price, days, currency):
        """Create a plan billing ``price`` every ``days`` days; returns the plan id."""
        price_value = Decimal(str(price)).quantize(Decimal("0.01"))
        data = self._request("POST", "/v1/billing/plans", "Failed to create PayPal plan", json={
            "product_id": product_id,
            "name": f"Driver Subscription {price_value} {currency}",
            "description": "Driver subscription plan",
            "billing_cycles": [
                {
                    "frequency": {"interval_unit": "DAY", "interval_count": days},
                    "tenure_type": "REGULAR",
                    "sequence": 1,
                    "total_cycles": 0,
                    "pricing_scheme": {
                        "fixed_price": {"value": str(price_value), "currency_code": currency},
                    },
                },
            ],
            "payment_preferences": {
                "auto_bill_outstanding": True,
                "setup_fee_failure_action": "CONTINUE",
                "payment_failure_threshold": 1,
            },
        })
        return data["id"]

    # ---------------------- Subscriptions ----------------------

    def create_subscription(self, plan_id, custom_id, return_url=None, cancel_url=None):
        application_context = {
            "brand_name": settings.PAYPAL_BRAND_NAME,
            "user_action": "SUBSCRIBE_NOW",
        }
        if return_url:
            application_context["return_url"] = return_url
        if cancel_url:
            application_context["cancel_url"] = cancel_url

        data = self._request("POST", "/v1/billing/subscriptions", "Failed to create subscription", json={
            "plan_id": plan_id,
            "custom_id": str(custom_id),
            "application_context": application_context,
        })
        approve_url = next(
            (link.get("href") for link in data.get("links", []) if link.get("rel") == "approve"),
            None,
        )
        return {"id": data.get("id"), "status": data.get("status"), "approve_url": approve_url}

    def get_subscription(self, subscription_id):
        return self._request(
            "GET",
            f"/v1/billing/subscriptions/{subscription_id}",
            "Failed to verify subscription",
        )
