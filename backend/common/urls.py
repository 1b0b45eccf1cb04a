from django.urls import path

from . import views

app_name = 'geo'

urlpatterns = [
    path('locate/', views.locate, name='locate'),
    path('currency/', views.currency_for_country, name='currency'),
    path('rate/', views.exchange_rate, name='rate'),
]
