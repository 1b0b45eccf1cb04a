from django.urls import path

from .views import (
    AvatarUploadView,
    ChangeEmailView,
    ChangePasswordView,
    LoginView,
    MeView,
    RefreshTokenView,
    RegisterView,
)

urlpatterns = [
    path('register/', RegisterView.as_view(), name='register'),
    path('login/', LoginView.as_view(), name='login'),
    path('refresh/', RefreshTokenView.as_view(), name='token-refresh'),
    path('me/', MeView.as_view(), name='me'),
    path('me/email/', ChangeEmailView.as_view(), name='change-email'),
    path('me/password/', ChangePasswordView.as_view(), name='change-password'),
    path('me/avatar/', AvatarUploadView.as_view(), name='avatar'),
]
