"""
City tenancy.

Each franchise city is served from its own subdomain of BASE_DOMAIN
(bournemouth.qwikker.com). CityTenantMiddleware sets ``request.city``;
every loyalty query is scoped to it.

Usage in settings.py:
    MIDDLEWARE = [
        ...
        "qwikker_loyalty.tenancy.CityTenantMiddleware",
    ]
"""

import logging

from qwikker_loyalty.conf import loyalty_settings

logger = logging.getLogger(__name__)


def resolve_city(host: str) -> str | None:
    """
    Derive the tenant city from a request host.

    Returns:
        The city slug, DEFAULT_CITY for local/unknown hosts, or None when
        the subdomain is not an allowed city.
    """
    host = host.split(":")[0].strip().lower().rstrip(".")
    allowed = loyalty_settings.ALLOWED_CITIES

    if host.endswith(".localhost"):
        city = host.split(".")[0]
    elif host.endswith(f".{loyalty_settings.BASE_DOMAIN}"):
        city = host[: -len(loyalty_settings.BASE_DOMAIN) - 1].split(".")[-1]
        if city == "www":
            return loyalty_settings.DEFAULT_CITY or None
    else:
        # bare domain, local dev, previews
        return loyalty_settings.DEFAULT_CITY or None

    if allowed and city not in allowed:
        if host.endswith(".localhost") and loyalty_settings.DEFAULT_CITY:
            return loyalty_settings.DEFAULT_CITY
        logger.warning("Request for unknown city subdomain %r", city)
        return None
    return city


class CityTenantMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.city = resolve_city(request.get_host())
        return self.get_response(request)
