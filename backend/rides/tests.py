from datetime import timedelta
from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import patch

from accounts.models import User
from drivers.models import DriverProfile
from pricing.models import AppSettings
from services.matching import expire_stale_offers, find_available_rides
from subscriptions.services import grant_free_access
from .models import Ride, RideMessage, RideOffer
from .tasks import expire_stale_offers_task
from .views import (
	accept_counter_offer,
	accept_ride,
	arrive,
	available_rides,
	complete,
	counter_offer,
	driver_cancel,
	live_position,
	ride_messages,
	send_offer,
	start,
)


def make_driver(username, city='Tirana', lat=None, lng=None):
	driver = User.objects.create_user(
		username=username,
		password='driver1234',
		role='driver',
		phone_number='+355690000000',
		city=city,
		admin_approved=True,
	)
	DriverProfile.objects.create(
		user=driver,
		vehicle_model='Toyota Prius',
		vehicle_plate=f'AA-{username}',
		status='available',
		current_latitude=lat,
		current_longitude=lng,
	)
	grant_free_access(driver, 30, reason='test')
	return driver


class RideTestBase(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.client_user = User.objects.create_user(
			username='client',
			password='pass1234',
			role='client',
			phone_number='+355691111111',
			city='Tirana',
		)
		self.driver_one = make_driver('driver_one', lat=41.3275, lng=19.8187)
		self.driver_two = make_driver('driver_two', lat=41.3300, lng=19.8200)

		self.ride = Ride.objects.create(
			client=self.client_user,
			pickup_lat=Decimal('41.327500'),
			pickup_lng=Decimal('19.818700'),
			pickup_address='Skanderbeg Square',
			pickup_city='Tirana',
			drop_address='Airport',
			base_price=Decimal('10.00'),
			status='pending',
		)

	def post(self, view, user, data=None, **kwargs):
		request = self.factory.post('/rides/', data or {}, format='json')
		force_authenticate(request, user=user)
		return view(request, **kwargs)


class OfferFlowTests(RideTestBase):
	def test_driver_sends_offer_with_expiry(self):
		response = self.post(send_offer, self.driver_one, {'price_offer': '12.00'}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 201)
		offer = RideOffer.objects.get(ride=self.ride, driver=self.driver_one)
		self.assertEqual(offer.status, 'pending')
		self.assertEqual(offer.price_offer, Decimal('12.00'))
		self.assertIsNotNone(offer.expires_at)
		# Offer position falls back to the driver's profile
		self.assertEqual(offer.driver_lat, Decimal('41.327500'))

	def test_resending_offer_updates_and_clears_counter(self):
		offer = RideOffer.objects.create(
			ride=self.ride, driver=self.driver_one,
			price_offer=Decimal('12.00'), client_counter_price=Decimal('9.00'),
		)

		response = self.post(send_offer, self.driver_one, {'price_offer': '11.00'}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 201)
		offer.refresh_from_db()
		self.assertEqual(RideOffer.objects.filter(ride=self.ride).count(), 1)
		self.assertEqual(offer.price_offer, Decimal('11.00'))
		self.assertIsNone(offer.client_counter_price)

	def test_offer_rejected_for_taken_ride(self):
		self.ride.status = 'driver_assigned'
		self.ride.driver = self.driver_two
		self.ride.save()

		response = self.post(send_offer, self.driver_one, {'price_offer': '12.00'}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'ride_not_available')

	def test_client_counter_then_driver_accepts_counter(self):
		offer = RideOffer.objects.create(
			ride=self.ride, driver=self.driver_one, price_offer=Decimal('15.00'),
			expires_at=timezone.now() + timedelta(minutes=5),
		)

		response = self.post(counter_offer, self.client_user, {'price': '13.00'}, offer_id=offer.id)
		self.assertEqual(response.status_code, 200)

		response = self.post(accept_counter_offer, self.driver_one, offer_id=offer.id)
		self.assertEqual(response.status_code, 200)

		self.ride.refresh_from_db()
		offer.refresh_from_db()
		self.assertEqual(self.ride.status, 'driver_assigned')
		self.assertEqual(self.ride.final_price, Decimal('13.00'))
		self.assertEqual(offer.status, 'accepted')

	def test_driver_cannot_counter(self):
		offer = RideOffer.objects.create(ride=self.ride, driver=self.driver_one, price_offer=Decimal('15.00'))

		response = self.post(counter_offer, self.driver_one, {'price': '13.00'}, offer_id=offer.id)

		self.assertEqual(response.status_code, 403)
		offer.refresh_from_db()
		self.assertIsNone(offer.client_counter_price)

	def test_expired_offer_cannot_be_accepted(self):
		offer = RideOffer.objects.create(
			ride=self.ride, driver=self.driver_one, price_offer=Decimal('15.00'),
			client_counter_price=Decimal('12.00'),
			expires_at=timezone.now() - timedelta(seconds=1),
		)

		response = self.post(accept_counter_offer, self.driver_one, offer_id=offer.id)

		self.assertEqual(response.status_code, 410)
		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, 'pending')

	def test_expire_stale_offers(self):
		stale = RideOffer.objects.create(
			ride=self.ride, driver=self.driver_one, price_offer=Decimal('15.00'),
			expires_at=timezone.now() - timedelta(minutes=1),
		)
		fresh = RideOffer.objects.create(
			ride=self.ride, driver=self.driver_two, price_offer=Decimal('14.00'),
			expires_at=timezone.now() + timedelta(minutes=5),
		)

		self.assertEqual(expire_stale_offers(), 1)

		stale.refresh_from_db()
		fresh.refresh_from_db()
		self.assertEqual(stale.status, 'expired')
		self.assertEqual(fresh.status, 'pending')

	def test_expire_task_and_command(self):
		RideOffer.objects.create(
			ride=self.ride, driver=self.driver_one, price_offer=Decimal('15.00'),
			expires_at=timezone.now() - timedelta(minutes=1),
		)
		self.assertEqual(expire_stale_offers_task.delay().get(), 1)

		RideOffer.objects.filter(driver=self.driver_one).update(status='pending')
		call_command('expire_ride_offers')
		self.assertEqual(RideOffer.objects.get(driver=self.driver_one).status, 'expired')


class AcceptanceTests(RideTestBase):
	def test_first_acceptance_wins_second_gets_conflict(self):
		RideOffer.objects.create(ride=self.ride, driver=self.driver_two, price_offer=Decimal('11.00'))

		first = self.post(accept_ride, self.driver_one, ride_id=self.ride.id)
		second = self.post(accept_ride, self.driver_two, ride_id=self.ride.id)

		self.assertEqual(first.status_code, 200)
		self.assertEqual(second.status_code, 409)
		self.assertEqual(second.data['error'], 'ride_already_taken')

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.driver, self.driver_one)
		self.assertEqual(self.ride.final_price, Decimal('10.00'))
		self.assertEqual(RideOffer.objects.get(driver=self.driver_two).status, 'rejected')
		self.assertEqual(DriverProfile.objects.get(user=self.driver_one).status, 'busy')

	def test_busy_driver_cannot_take_second_ride(self):
		self.post(accept_ride, self.driver_one, ride_id=self.ride.id)
		other_client = User.objects.create_user(username='other', password='x' * 8, role='client')
		other_ride = Ride.objects.create(
			client=other_client, pickup_lat=Decimal('41.3'), pickup_lng=Decimal('19.8'),
			pickup_city='Tirana', base_price=Decimal('8.00'),
		)

		response = self.post(accept_ride, self.driver_one, ride_id=other_ride.id)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'active_ride_exists')
		other_ride.refresh_from_db()
		self.assertEqual(other_ride.status, 'pending')

	def test_unapproved_driver_is_gated(self):
		self.driver_one.admin_approved = False
		self.driver_one.save()

		response = self.post(accept_ride, self.driver_one, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['error'], 'verification_required')

	def test_driver_without_subscription_is_gated(self):
		self.driver_one.driver_subscription.delete()

		request = self.factory.get('/rides/available/')
		force_authenticate(request, user=self.driver_one)
		response = available_rides(request)

		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['error'], 'subscription_required')

	def test_subscription_not_required_when_disabled(self):
		self.driver_one.driver_subscription.delete()
		app_settings = AppSettings.load()
		app_settings.require_driver_subscription = False
		app_settings.save()

		response = self.post(accept_ride, self.driver_one, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)


class LifecycleTests(RideTestBase):
	def test_full_ride_to_completion(self):
		self.assertEqual(self.post(accept_ride, self.driver_one, ride_id=self.ride.id).status_code, 200)
		self.assertEqual(self.post(arrive, self.driver_one, ride_id=self.ride.id).status_code, 200)
		self.assertEqual(self.post(start, self.driver_one, ride_id=self.ride.id).status_code, 200)
		response = self.post(complete, self.driver_one, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		self.ride.refresh_from_db()
		self.client_user.refresh_from_db()
		self.driver_one.refresh_from_db()
		self.assertEqual(self.ride.status, 'completed')
		self.assertEqual(self.ride.payment_status, 'paid')
		self.assertIsNotNone(self.ride.completed_at)
		self.assertEqual(self.client_user.completed_rides, 1)
		self.assertEqual(self.driver_one.completed_rides, 1)
		self.assertEqual(DriverProfile.objects.get(user=self.driver_one).status, 'available')

	def test_cannot_complete_before_start(self):
		self.post(accept_ride, self.driver_one, ride_id=self.ride.id)

		response = self.post(complete, self.driver_one, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 400)

	def test_other_driver_cannot_progress_ride(self):
		self.post(accept_ride, self.driver_one, ride_id=self.ride.id)

		response = self.post(arrive, self.driver_two, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 404)

	def test_driver_cancel_returns_ride_to_pool(self):
		self.post(accept_ride, self.driver_one, ride_id=self.ride.id)

		with patch('realtime.notifications.notify_drivers_new_ride') as mock_broadcast:
			with self.captureOnCommitCallbacks(execute=True):
				response = self.post(driver_cancel, self.driver_one, {'reason': 'flat tyre'}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 200)
		mock_broadcast.assert_called_once()
		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, 'pending')
		self.assertIsNone(self.ride.driver)
		self.assertIsNone(self.ride.final_price)
		self.assertEqual(DriverProfile.objects.get(user=self.driver_one).status, 'available')

	def test_live_position_is_stored(self):
		self.post(accept_ride, self.driver_one, ride_id=self.ride.id)

		response = self.post(
			live_position, self.driver_one, {'latitude': '41.330000', 'longitude': '19.820000', 'speed': 12.5},
			ride_id=self.ride.id,
		)

		self.assertEqual(response.status_code, 200)
		self.ride.refresh_from_db()
		self.assertEqual(self.ride.driver_lat, Decimal('41.330000'))

	def test_blocked_driver_cannot_cancel_or_push_position(self):
		self.post(accept_ride, self.driver_one, ride_id=self.ride.id)
		self.post(arrive, self.driver_one, ride_id=self.ride.id)
		self.driver_one.admin_blocked = True
		self.driver_one.save()

		response = self.post(
			live_position, self.driver_one, {'latitude': '41.330000', 'longitude': '19.820000'},
			ride_id=self.ride.id,
		)
		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['error'], 'blocked')

		response = self.post(driver_cancel, self.driver_one, {'reason': 'leaving'}, ride_id=self.ride.id)
		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['error'], 'blocked')

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, 'driver_arrived')
		self.assertEqual(self.ride.driver, self.driver_one)
		self.assertIsNone(self.ride.driver_lat)


class AvailableRidesTests(RideTestBase):
	def test_city_match_is_case_insensitive(self):
		self.driver_one.city = 'TIRANA'
		self.driver_one.save()

		rides = find_available_rides(self.driver_one)

		self.assertEqual([r.id for r in rides], [self.ride.id])

	def test_radius_fallback_when_no_city_match(self):
		# driver_two sits roughly 300 m from the pickup
		self.driver_two.city = 'Durres'
		self.driver_two.save()

		self.assertEqual([r.id for r in find_available_rides(self.driver_two, radius_km=5)], [self.ride.id])
		self.assertEqual(find_available_rides(self.driver_two, radius_km=0.1), [])

	def test_listing_includes_drivers_own_offer(self):
		RideOffer.objects.create(ride=self.ride, driver=self.driver_one, price_offer=Decimal('12.00'))

		request = self.factory.get('/rides/available/')
		force_authenticate(request, user=self.driver_one)
		response = available_rides(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 1)


class RideChatTests(RideTestBase):
	def setUp(self):
		super().setUp()
		self.post(accept_ride, self.driver_one, ride_id=self.ride.id)

	@patch('realtime.notifications.notify_ride_group')
	def test_participants_can_chat(self, mock_notify):
		response = self.post(ride_messages, self.client_user, {'message': ' On my way down '}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 201)
		message = RideMessage.objects.get(ride=self.ride)
		self.assertEqual(message.message, 'On my way down')
		self.assertEqual(message.sender_role, 'client')
		mock_notify.assert_called_once()
		self.assertEqual(mock_notify.call_args[0][1], 'chat_message')

		request = self.factory.get('/rides/%d/messages/' % self.ride.id)
		force_authenticate(request, user=self.driver_one)
		response = ride_messages(request, ride_id=self.ride.id)
		self.assertEqual(len(response.data), 1)

	def test_empty_message_is_rejected(self):
		response = self.post(ride_messages, self.client_user, {'message': '   '}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 400)
		self.assertFalse(RideMessage.objects.exists())

	def test_message_over_limit_is_rejected(self):
		response = self.post(ride_messages, self.client_user, {'message': 'x' * 2001}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 400)
		self.assertFalse(RideMessage.objects.exists())

	@patch('realtime.notifications.notify_ride_group')
	def test_message_at_limit_is_accepted(self, mock_notify):
		response = self.post(ride_messages, self.client_user, {'message': 'x' * 2000}, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(RideMessage.objects.count(), 1)

	def test_outsider_cannot_read_chat(self):
		request = self.factory.get('/rides/%d/messages/' % self.ride.id)
		force_authenticate(request, user=self.driver_two)
		response = ride_messages(request, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 403)
