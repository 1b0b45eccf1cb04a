from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    # Driver APIs
    path('available/', views.available_rides, name='available-rides'),
    path('<int:ride_id>/offer/', views.send_offer, name='send-offer'),
    path('<int:ride_id>/accept/', views.accept_ride, name='accept-ride'),
    path('<int:ride_id>/accept-client-price/', views.accept_client_price, name='accept-client-price'),
    path('offers/<int:offer_id>/accept-counter/', views.accept_counter_offer, name='accept-counter'),
    path('<int:ride_id>/arrive/', views.arrive, name='arrive'),
    path('<int:ride_id>/start/', views.start, name='start'),
    path('<int:ride_id>/complete/', views.complete, name='complete'),
    path('<int:ride_id>/driver-cancel/', views.driver_cancel, name='driver-cancel'),
    path('<int:ride_id>/position/', views.live_position, name='live-position'),

    # Client counter-offer
    path('offers/<int:offer_id>/counter/', views.counter_offer, name='counter-offer'),

    # Chat (client or driver of the ride)
    path('<int:ride_id>/messages/', views.ride_messages, name='ride-messages'),
]
