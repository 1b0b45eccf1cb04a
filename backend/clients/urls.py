from django.urls import path

from .views import (
    ClientAcceptOfferView,
    ClientCancelRideView,
    ClientCreateRideView,
    ClientCurrentRideView,
    ClientRideEstimateView,
    ClientRideHistoryView,
    ClientRideOffersView,
)

urlpatterns = [
    path("rides/", ClientCreateRideView.as_view(), name="client-create-ride"),
    path("rides/estimate/", ClientRideEstimateView.as_view(), name="client-ride-estimate"),
    path("rides/current/", ClientCurrentRideView.as_view(), name="client-current-ride"),
    path("rides/history/", ClientRideHistoryView.as_view(), name="client-ride-history"),
    path("rides/<int:ride_id>/cancel/", ClientCancelRideView.as_view(), name="client-cancel-ride"),
    path("rides/<int:ride_id>/offers/", ClientRideOffersView.as_view(), name="client-ride-offers"),
    path("offers/<int:offer_id>/accept/", ClientAcceptOfferView.as_view(), name="client-accept-offer"),
]
