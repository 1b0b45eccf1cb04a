"""
Currency helpers shared by pricing, subscriptions and the geo endpoints.

Country -> currency lookups go to restcountries.com and exchange rates to
open.er-api.com. Both answers are kept in the Django cache.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

import requests
from django.core.cache import cache

logger = logging.getLogger(__name__)

PAYPAL_SUPPORTED_CURRENCIES = frozenset([
    'AUD', 'BRL', 'CAD', 'CZK', 'DKK', 'EUR', 'HKD', 'HUF', 'ILS', 'JPY',
    'MYR', 'MXN', 'TWD', 'NZD', 'NOK', 'PHP', 'PLN', 'GBP', 'RUB', 'SGD',
    'SEK', 'CHF', 'THB', 'USD',
])

ZERO_DECIMAL_CURRENCIES = frozenset(['HUF', 'JPY', 'TWD'])

DEFAULT_CURRENCY = 'USD'

RESTCOUNTRIES_URL = "https://restcountries.com/v3.1/alpha/{code}?fields=currencies"
EXCHANGE_RATE_URL = "https://open.er-api.com/v6/latest/{base}"

RATE_CACHE_TTL = 6 * 60 * 60
COUNTRY_CACHE_TTL = 30 * 24 * 60 * 60
REQUEST_TIMEOUT = 10


def _clean(code) -> str:
    return code.strip().upper() if isinstance(code, str) else ""


def is_paypal_currency_supported(code) -> bool:
    return _clean(code) in PAYPAL_SUPPORTED_CURRENCIES


def normalize_currency(code=None, fallback=None) -> str:
    """Return code if PayPal supports it, else fallback if supported, else USD."""
    normalized = _clean(code)
    if normalized in PAYPAL_SUPPORTED_CURRENCIES:
        return normalized
    fallback_normalized = _clean(fallback)
    if fallback_normalized in PAYPAL_SUPPORTED_CURRENCIES:
        return fallback_normalized
    return DEFAULT_CURRENCY


def round_amount(amount, currency: str) -> Decimal:
    """Round to whole units for zero-decimal currencies, cents otherwise."""
    value = Decimal(str(amount))
    exponent = Decimal('1') if _clean(currency) in ZERO_DECIMAL_CURRENCIES else Decimal('0.01')
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def format_currency(amount, currency: str) -> str:
    code = _clean(currency) or DEFAULT_CURRENCY
    try:
        rounded = round_amount(amount, code)
    except (ArithmeticError, ValueError):
        return f"{amount} {currency}"
    if code in ZERO_DECIMAL_CURRENCIES:
        return f"{rounded:,.0f} {code}"
    return f"{rounded:,.2f} {code}"


def fetch_country_currency(country_code: str):
    """Ask restcountries for the first currency of a country. None on failure."""
    try:
        response = requests.get(
            RESTCOUNTRIES_URL.format(code=country_code),
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException:
        logger.warning("Currency lookup failed for country %s", country_code)
        return None

    if not response.ok:
        return None

    try:
        data = response.json()
    except ValueError:
        logger.warning("Currency lookup for country %s returned a non-JSON body", country_code)
        return None
    entry = data[0] if isinstance(data, list) and data else data
    currencies = entry.get("currencies") if isinstance(entry, dict) else None
    if not currencies or not isinstance(currencies, dict):
        return None
    return next(iter(currencies.keys()), None)


def resolve_currency_for_country(country_code=None, fallback=None) -> dict:
    """
    Resolve the PayPal-usable currency for a country.

    Returns a dict with the normalized ``currency``, the ``raw`` currency the
    country actually uses (may be None) and ``is_fallback`` when the two differ.
    """
    code = _clean(country_code)
    if not code:
        return {"currency": normalize_currency(None, fallback), "raw": None, "is_fallback": True}

    cache_key = f"country_currency:{code}"
    raw_currency = cache.get(cache_key)
    if not raw_currency:
        raw_currency = fetch_country_currency(code)
        if raw_currency:
            cache.set(cache_key, raw_currency, COUNTRY_CACHE_TTL)

    normalized = normalize_currency(raw_currency, fallback)
    is_fallback = not raw_currency or normalized != raw_currency.upper()
    return {"currency": normalized, "raw": raw_currency, "is_fallback": is_fallback}


def fetch_rates(base_currency: str):
    try:
        response = requests.get(EXCHANGE_RATE_URL.format(base=base_currency), timeout=REQUEST_TIMEOUT)
    except requests.RequestException:
        logger.warning("Exchange rate lookup failed for %s", base_currency)
        return None

    if not response.ok:
        return None
    try:
        data = response.json()
    except ValueError:
        logger.warning("Exchange rate lookup for %s returned a non-JSON body", base_currency)
        return None
    if not isinstance(data, dict) or data.get("result") != "success" or not data.get("rates"):
        return None
    return data["rates"]


def get_exchange_rate(base_currency: str, target_currency: str):
    """Exchange rate base -> target, cached per base currency for six hours."""
    base = _clean(base_currency)
    target = _clean(target_currency)
    if not base or not target:
        return None
    if base == target:
        return 1.0

    cache_key = f"fx_rates:{base}"
    rates = cache.get(cache_key)
    if rates is None:
        rates = fetch_rates(base)
        if not rates:
            return None
        cache.set(cache_key, rates, RATE_CACHE_TTL)

    rate = rates.get(target)
    return float(rate) if isinstance(rate, (int, float)) else None
