from django.urls import path

from .views import AffiliateCodeView, AffiliateReferralsView

urlpatterns = [
    path("code/", AffiliateCodeView.as_view(), name="affiliate-code"),
    path("referrals/", AffiliateReferralsView.as_view(), name="affiliate-referrals"),
]
