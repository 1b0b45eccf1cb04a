from django.urls import path

from .views import GooglePlayVerifyView, PayPalCreateView, PayPalVerifyView, SubscriptionStateView

urlpatterns = [
    path("me/", SubscriptionStateView.as_view(), name="subscription-state"),
    path("paypal/create/", PayPalCreateView.as_view(), name="subscription-paypal-create"),
    path("paypal/verify/", PayPalVerifyView.as_view(), name="subscription-paypal-verify"),
    path("google-play/verify/", GooglePlayVerifyView.as_view(), name="subscription-google-play-verify"),
]
