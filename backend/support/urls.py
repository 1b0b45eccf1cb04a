from django.urls import path

from .views import MySupportThreadView, SupportThreadCloseView, SupportThreadDetailView, SupportThreadListView

urlpatterns = [
    path("thread/", MySupportThreadView.as_view(), name="support-my-thread"),
    path("threads/", SupportThreadListView.as_view(), name="support-thread-list"),
    path("threads/<int:thread_id>/", SupportThreadDetailView.as_view(), name="support-thread-detail"),
    path("threads/<int:thread_id>/close/", SupportThreadCloseView.as_view(), name="support-thread-close"),
]
