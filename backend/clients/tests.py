from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import patch

from accounts.models import User
from drivers.models import DriverProfile
from pricing.models import AppSettings
from rides.models import Ride, RideOffer
from .views import (
	ClientAcceptOfferView,
	ClientCancelRideView,
	ClientCreateRideView,
	ClientCurrentRideView,
	ClientRideEstimateView,
	ClientRideOffersView,
)

RIDE_REQUEST = {
	'pickup_lat': '41.327500',
	'pickup_lng': '19.818700',
	'pickup_address': 'Skanderbeg Square',
	'drop_lat': '41.323100',
	'drop_lng': '19.441400',
	'drop_address': 'Durres Beach',
	'passengers': 2,
}


class ClientRideTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.client_user = User.objects.create_user(
			username='client', password='pass1234', role='client', phone_number='+355690000010', city='Tirana',
		)
		self.driver = User.objects.create_user(username='driver', password='pass1234', role='driver')
		DriverProfile.objects.create(user=self.driver, status='available')

	def call(self, view, method, data=None, user=None, **kwargs):
		request = getattr(self.factory, method)('/api/client/', data or {}, format='json')
		force_authenticate(request, user=user or self.client_user)
		return view.as_view()(request, **kwargs)

	def test_create_ride_prices_server_side(self):
		settings = AppSettings.load()
		settings.fixed_price_amount = Decimal('6.00')
		settings.currency = 'EUR'
		settings.save()

		with patch('realtime.notifications.notify_drivers_new_ride') as mock_broadcast:
			with self.captureOnCommitCallbacks(execute=True):
				response = self.call(ClientCreateRideView, 'post', dict(RIDE_REQUEST, base_price='1.00'))

		self.assertEqual(response.status_code, 201)
		ride = Ride.objects.get(client=self.client_user)
		self.assertEqual(ride.base_price, Decimal('12.00'))
		self.assertEqual(ride.currency, 'EUR')
		self.assertEqual(ride.pickup_city, 'Tirana')
		self.assertGreater(ride.estimated_time_minutes, 60)
		mock_broadcast.assert_called_once()

	def test_second_active_ride_is_rejected(self):
		self.call(ClientCreateRideView, 'post', RIDE_REQUEST)
		response = self.call(ClientCreateRideView, 'post', RIDE_REQUEST)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'active_ride_exists')
		self.assertEqual(Ride.objects.filter(client=self.client_user).count(), 1)

	def test_drop_needs_both_coordinates(self):
		data = dict(RIDE_REQUEST)
		del data['drop_lng']

		response = self.call(ClientCreateRideView, 'post', data)

		self.assertEqual(response.status_code, 400)

	def test_ride_without_dropoff_is_rejected(self):
		settings = AppSettings.load()
		settings.pricing_mode = 'distance'
		settings.price_per_km = Decimal('2.00')
		settings.save()
		data = {key: value for key, value in RIDE_REQUEST.items() if not key.startswith('drop_')}

		response = self.call(ClientCreateRideView, 'post', data)

		self.assertEqual(response.status_code, 400)
		self.assertIn('drop_lat', response.data)
		self.assertFalse(Ride.objects.exists())

	def test_estimate_without_dropoff_is_rejected(self):
		data = {key: value for key, value in RIDE_REQUEST.items() if not key.startswith('drop_')}

		response = self.call(ClientRideEstimateView, 'post', data)

		self.assertEqual(response.status_code, 400)

	def test_drivers_cannot_request_rides(self):
		response = self.call(ClientCreateRideView, 'post', RIDE_REQUEST, user=self.driver)

		self.assertEqual(response.status_code, 403)

	def test_estimate_does_not_create_ride(self):
		response = self.call(ClientRideEstimateView, 'post', RIDE_REQUEST)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['price'], Decimal('20'))
		self.assertAlmostEqual(response.data['distance_km'], 31.5, delta=0.5)
		self.assertFalse(Ride.objects.exists())

	def test_current_ride(self):
		response = self.call(ClientCurrentRideView, 'get')
		self.assertFalse(response.data['has_active_ride'])

		self.call(ClientCreateRideView, 'post', RIDE_REQUEST)
		response = self.call(ClientCurrentRideView, 'get')
		self.assertTrue(response.data['has_active_ride'])
		self.assertFalse(response.data['driver_assigned'])

	def test_cancel_assigned_ride_frees_driver(self):
		ride = Ride.objects.create(
			client=self.client_user, driver=self.driver, status='driver_assigned',
			pickup_lat=Decimal('41.3'), pickup_lng=Decimal('19.8'), base_price=Decimal('10'),
		)
		DriverProfile.objects.filter(user=self.driver).update(status='busy')

		response = self.call(ClientCancelRideView, 'post', {'reason': 'Changed plans'}, ride_id=ride.id)

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['was_assigned'])
		ride.refresh_from_db()
		self.assertEqual(ride.status, 'cancelled')
		self.assertEqual(ride.cancellation_reason, 'Changed plans')
		self.assertEqual(DriverProfile.objects.get(user=self.driver).status, 'available')

	def test_cannot_cancel_completed_ride(self):
		ride = Ride.objects.create(
			client=self.client_user, status='completed',
			pickup_lat=Decimal('41.3'), pickup_lng=Decimal('19.8'), base_price=Decimal('10'),
		)

		response = self.call(ClientCancelRideView, 'post', ride_id=ride.id)

		self.assertEqual(response.status_code, 400)

	def test_list_and_accept_offer(self):
		ride = Ride.objects.create(
			client=self.client_user, pickup_lat=Decimal('41.3'), pickup_lng=Decimal('19.8'), base_price=Decimal('10'),
		)
		offer = RideOffer.objects.create(
			ride=ride, driver=self.driver, price_offer=Decimal('9.00'),
			expires_at=timezone.now() + timedelta(minutes=5),
		)

		response = self.call(ClientRideOffersView, 'get', ride_id=ride.id)
		self.assertEqual(response.data['count'], 1)

		response = self.call(ClientAcceptOfferView, 'post', offer_id=offer.id)

		self.assertEqual(response.status_code, 200)
		ride.refresh_from_db()
		self.assertEqual(ride.driver, self.driver)
		self.assertEqual(ride.final_price, Decimal('9.00'))
		self.assertEqual(DriverProfile.objects.get(user=self.driver).status, 'busy')

	def test_cannot_see_other_clients_offers(self):
		other = User.objects.create_user(username='other', password='x', role='client')
		ride = Ride.objects.create(
			client=other, pickup_lat=Decimal('41.3'), pickup_lng=Decimal('19.8'), base_price=Decimal('10'),
		)

		response = self.call(ClientRideOffersView, 'get', ride_id=ride.id)

		self.assertEqual(response.status_code, 404)
