import logging
import secrets
import string
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction

from accounts.models import User
from .models import AffiliateCode

logger = logging.getLogger(__name__)

CODE_PREFIX = "STZ-"
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
MAX_ATTEMPTS = 3


class AffiliateCodeError(Exception):
    """Raised when no unique code could be generated."""
    pass


def generate_code() -> str:
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def ensure_affiliate_code(affiliate) -> AffiliateCode:
    """Return the affiliate's code, creating one if needed."""
    existing = AffiliateCode.objects.filter(affiliate=affiliate).first()
    if existing:
        return existing

    for _ in range(MAX_ATTEMPTS):
        try:
            with transaction.atomic():
                return AffiliateCode.objects.create(affiliate=affiliate, code=generate_code())
        except IntegrityError:
            # Either a code collision or a concurrent create for the same affiliate
            existing = AffiliateCode.objects.filter(affiliate=affiliate).first()
            if existing:
                return existing

    raise AffiliateCodeError("Could not generate a unique affiliate code")


def resolve_referral_code(code) -> Optional[str]:
    """Normalised code if it belongs to an affiliate, else None."""
    code = (code or "").strip().upper()
    if not code:
        return None
    if AffiliateCode.objects.filter(code=code).exists():
        return code
    logger.info("Ignoring unknown referral code %s", code)
    return None


def referral_link(code: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/register?role=client&ref={code}"


def referred_clients(code: str):
    return User.objects.filter(referred_by_code=code, role=User.ROLE_CLIENT).order_by("-date_joined")
