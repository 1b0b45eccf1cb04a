"""Approximate caller location from public IP geolocation providers."""

import logging

import requests

logger = logging.getLogger(__name__)

IP_GEO_SOURCES = [
    "https://ipapi.co/{ip}json/",
    "https://ipwho.is/{ip}",
    "https://ipinfo.io/{ip}json",
]

REQUEST_TIMEOUT = 5


def _first(data, *keys):
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _to_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_ip_location(data):
    """
    Normalise a provider payload into {city, country_code, lat, lng}.

    Returns None when the payload reports failure or carries nothing usable.
    """
    if not isinstance(data, dict) or data.get("success") is False:
        return None

    nested = data.get("location") if isinstance(data.get("location"), dict) else {}

    city = _first(data, "city", "region", "region_name", "state", "province")
    country_code = _first(data, "country_code", "countryCode", "country_code_iso2", "country")

    lat_raw = _first(data, "latitude", "lat")
    if lat_raw is None:
        lat_raw = nested.get("lat")
    lng_raw = _first(data, "longitude", "lon", "lng")
    if lng_raw is None:
        lng_raw = nested.get("lng")

    loc_raw = data.get("loc") or nested.get("loc")
    if (lat_raw is None or lng_raw is None) and isinstance(loc_raw, str) and "," in loc_raw:
        lat_part, lng_part = loc_raw.split(",", 1)
        if lat_raw is None:
            lat_raw = lat_part
        if lng_raw is None:
            lng_raw = lng_part

    location = {}
    if isinstance(city, str) and city.strip():
        location["city"] = city.strip()
    if isinstance(country_code, str) and country_code.strip():
        location["country_code"] = country_code.strip().upper()
    lat = _to_float(lat_raw)
    lng = _to_float(lng_raw)
    if lat is not None:
        location["lat"] = lat
    if lng is not None:
        location["lng"] = lng

    return location or None


def detect_location_from_ip(ip_address=None):
    """Try each provider in order; the first parseable answer wins."""
    ip_segment = f"{ip_address}/" if ip_address else ""
    for template in IP_GEO_SOURCES:
        url = template.format(ip=ip_segment)
        try:
            response = requests.get(url, headers={"Accept": "application/json"}, timeout=REQUEST_TIMEOUT)
        except requests.RequestException:
            logger.debug("IP geolocation provider failed: %s", url)
            continue
        if not response.ok:
            continue
        try:
            payload = response.json()
        except ValueError:
            continue
        parsed = parse_ip_location(payload)
        if parsed:
            return parsed
    return None


def get_client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")
