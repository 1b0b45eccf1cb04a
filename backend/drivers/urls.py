from django.urls import path
from .views import (
    DriverAccessView,
    DriverCurrentRideView,
    DriverLocationUpdateView,
    DriverProfileView,
    DriverRideHistoryView,
    DriverStatusView,
    DriverVerificationView,
    driver_document,
)

urlpatterns = [
    path("profile/", DriverProfileView.as_view(), name="driver-profile"),
    path("status/", DriverStatusView.as_view(), name="driver-status"),
    path("location/", DriverLocationUpdateView.as_view(), name="driver-location"),
    path("current-ride/", DriverCurrentRideView.as_view(), name="driver-current-ride"),
    path("history/", DriverRideHistoryView.as_view(), name="driver-history"),
    path("access/", DriverAccessView.as_view(), name="driver-access"),
    path("verification/", DriverVerificationView.as_view(), name="driver-verification"),
    path("documents/<str:token>/", driver_document, name="driver-document"),
]
