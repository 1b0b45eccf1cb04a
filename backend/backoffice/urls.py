from django.urls import path

from .views import (
    AffiliateStatsView,
    CrmView,
    DriverBlockView,
    DriverListView,
    FreeAccessView,
    OwnerStatsView,
    RideListView,
    VerificationQueueView,
    VerificationReviewView,
)

urlpatterns = [
    path("rides/", RideListView.as_view(), name="backoffice-rides"),
    path("drivers/", DriverListView.as_view(), name="backoffice-drivers"),
    path("drivers/<int:driver_id>/block/", DriverBlockView.as_view(), name="backoffice-driver-block"),
    path("drivers/<int:driver_id>/free-access/", FreeAccessView.as_view(), name="backoffice-free-access"),
    path("verifications/", VerificationQueueView.as_view(), name="backoffice-verifications"),
    path("verifications/<int:verification_id>/review/", VerificationReviewView.as_view(),
         name="backoffice-verification-review"),
    path("crm/", CrmView.as_view(), name="backoffice-crm"),
    path("affiliates/", AffiliateStatsView.as_view(), name="backoffice-affiliates"),
    path("stats/", OwnerStatsView.as_view(), name="backoffice-stats"),
]
