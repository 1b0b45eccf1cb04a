import logging
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings
from django.core import signing
from django.db import transaction
from django.urls import reverse
from django.utils import timezone

from drivers.models import DriverProfile, DriverVerification
from pricing.models import AppSettings

logger = logging.getLogger(__name__)

DOCUMENT_SIGNING_SALT = "driver-verification-document"


class VerificationError(Exception):
    """Raised when a verification submission or review is invalid."""
    pass


@dataclass
class DriverAccess:
    allowed: bool
    reason: Optional[str] = None
    message: str = ""
    verification_status: Optional[str] = None
    subscription: dict = field(default_factory=dict)

    def as_dict(self):
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "message": self.message,
            "verification_status": self.verification_status,
            "subscription": self.subscription,
        }


# DRIVER ACCESS CHECK
def check_driver_access(user) -> DriverAccess:
    """
    Decide whether a driver may see and take rides.

    Order matters: blocked, then verification, then subscription.
    """
    from subscriptions.services import get_subscription

    verification = DriverVerification.objects.filter(driver=user).only("status").first()
    verification_status = verification.status if verification else None

    subscription = get_subscription(user)
    subscription_info = {
        "status": subscription.status if subscription else None,
        "is_active": subscription.is_active if subscription else False,
        "is_free_access": subscription.is_free_access if subscription else False,
        "expires_at": subscription.expires_at if subscription else None,
        "days_remaining": subscription.days_remaining if subscription else 0,
    }

    if user.admin_blocked:
        return DriverAccess(False, "blocked", "Your account has been blocked by an administrator.",
                            verification_status, subscription_info)

    if not user.admin_approved:
        return DriverAccess(False, "verification_required", "Submit your documents and wait for approval.",
                            verification_status, subscription_info)

    app_settings = AppSettings.load()
    if app_settings.require_driver_subscription and not subscription_info["is_active"]:
        return DriverAccess(False, "subscription_required", "An active subscription is required.",
                            verification_status, subscription_info)

    return DriverAccess(True, None, "", verification_status, subscription_info)


def get_or_create_profile(user) -> DriverProfile:
    profile, _ = DriverProfile.objects.get_or_create(user=user)
    return profile


# DRIVER STATUS UPDATE
def update_driver_status(profile: DriverProfile, new_status: str):
    profile.status = new_status
    profile.save(update_fields=["status"])
    return profile


def update_driver_location(profile: DriverProfile, lat, lon):
    """Update driver location. Used by the HTTP endpoint and live ride updates."""
    profile.current_latitude = lat
    profile.current_longitude = lon
    profile.last_location_update = timezone.now()
    profile.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])
    return profile


# VERIFICATION
@transaction.atomic
def submit_verification(user, data, files) -> DriverVerification:
    """
    Create or replace the driver's verification submission.

    Resubmitting always returns the record to pending and clears the review.
    """
    document_type = data["id_document_type"]
    existing = DriverVerification.objects.select_for_update().filter(driver=user).first()

    id_front = files.get("id_front") or (existing.id_front if existing else None)
    id_back = files.get("id_back") or (existing.id_back if existing else None)
    license_file = files.get("license_file") or (existing.license_file if existing else None)

    if not id_front:
        raise VerificationError("Front side of the ID document is required")
    if document_type == "id_card" and not id_back:
        raise VerificationError("Back side is required for ID cards")
    if not license_file:
        raise VerificationError("Driving licence file is required")

    verification = existing or DriverVerification(driver=user)
    verification.id_document_type = document_type
    verification.id_document_number = data["id_document_number"]
    verification.license_number = data["license_number"]
    verification.license_class = data.get("license_class", "")
    verification.vehicle_plate = data["vehicle_plate"]
    verification.id_front = id_front
    verification.id_back = id_back
    verification.license_file = license_file
    verification.status = "pending"
    verification.admin_note = ""
    verification.reviewed_by = None
    verification.reviewed_at = None
    verification.submitted_at = timezone.now()
    verification.save()

    profile = get_or_create_profile(user)
    profile.vehicle_plate = verification.vehicle_plate
    profile.save(update_fields=["vehicle_plate"])

    logger.info("Driver %s submitted verification", user.id)
    return verification


@transaction.atomic
def review_verification(verification: DriverVerification, reviewer, approve: bool, note: str = ""):
    """Approve or reject a submission; approval unlocks the driver account."""
    verification.status = "approved" if approve else "rejected"
    verification.admin_note = note or ""
    verification.reviewed_by = reviewer
    verification.reviewed_at = timezone.now()
    verification.save(update_fields=["status", "admin_note", "reviewed_by", "reviewed_at", "updated_at"])

    driver = verification.driver
    driver.admin_approved = approve
    driver.save(update_fields=["admin_approved", "updated_at"])

    logger.info("Verification %s for driver %s by %s", verification.status, driver.id, reviewer.id)
    return verification


# SIGNED DOCUMENT URLS
def sign_document(verification_id: int, field_name: str) -> str:
    return signing.dumps({"v": verification_id, "f": field_name}, salt=DOCUMENT_SIGNING_SALT)


def unsign_document(token: str):
    """Return (verification_id, field_name) or raise signing.BadSignature."""
    data = signing.loads(token, salt=DOCUMENT_SIGNING_SALT, max_age=settings.SIGNED_DOCUMENT_URL_TTL)
    return data["v"], data["f"]


def signed_document_urls(verification: DriverVerification, request=None) -> dict:
    """Time-limited links to each uploaded document."""
    urls = {}
    for field_name in DriverVerification.DOCUMENT_FIELDS:
        if not getattr(verification, field_name):
            urls[field_name] = None
            continue
        path = reverse("driver-document", kwargs={"token": sign_document(verification.id, field_name)})
        urls[field_name] = request.build_absolute_uri(path) if request else path
    return urls
