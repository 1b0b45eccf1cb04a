from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from affiliates.services import ensure_affiliate_code
from drivers.models import DriverVerification
from rides.models import Ride
from subscriptions.models import DriverSubscription
from . import services
from .views import (
	AffiliateStatsView,
	DriverBlockView,
	DriverListView,
	FreeAccessView,
	OwnerStatsView,
	RideListView,
	VerificationReviewView,
)


class BackofficeTestBase(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.owner = User.objects.create_user(username='owner', password='x', role='owner')
		self.admin = User.objects.create_user(username='admin', password='x', role='admin')
		self.driver = User.objects.create_user(username='driver', password='x', role='driver', full_name='Dritan Driver')
		self.other_driver = User.objects.create_user(username='driver2', password='x', role='driver')
		self.client_a = User.objects.create_user(username='anna', password='x', role='client', full_name='Anna Client')
		self.client_b = User.objects.create_user(username='ben', password='x', role='client', full_name='Ben Client')

	def make_ride(self, client, driver=None, status='completed', price='10.00', payment_status='paid', minutes_ago=0):
		return Ride.objects.create(
			client=client,
			driver=driver,
			pickup_lat=Decimal('41.3'),
			pickup_lng=Decimal('19.8'),
			pickup_address='Blloku',
			drop_address='Airport',
			base_price=Decimal(price),
			final_price=Decimal(price) if driver else None,
			status=status,
			payment_status=payment_status,
			completed_at=timezone.now() - timedelta(minutes=minutes_ago) if status == 'completed' else None,
		)

	def call(self, view, method, user, data=None, **kwargs):
		request = getattr(self.factory, method)('/api/backoffice/', data or {}, format='json')
		force_authenticate(request, user=user)
		return view.as_view()(request, **kwargs)


class CrmTests(BackofficeTestBase):
	def test_pairs_sorted_by_trips_then_recency(self):
		self.make_ride(self.client_a, self.driver, price='8.00', minutes_ago=30)
		self.make_ride(self.client_a, self.driver, price='12.00', minutes_ago=5)
		self.make_ride(self.client_b, self.other_driver, price='9.00', minutes_ago=1)
		self.make_ride(self.client_b, self.driver, status='cancelled', payment_status='pending')

		result = services.driver_pairs()

		self.assertEqual(len(result['pairs']), 2)
		top = result['pairs'][0]
		self.assertEqual((top['driver']['id'], top['client']['id']), (self.driver.id, self.client_a.id))
		self.assertEqual(top['trips'], 2)
		self.assertEqual(top['last_price'], Decimal('12.00'))
		self.assertEqual(result['totals'], {'trips': 3, 'drivers': 2, 'clients': 2, 'pairs': 2})

	def test_pairs_search(self):
		self.make_ride(self.client_a, self.driver)
		self.make_ride(self.client_b, self.other_driver)

		result = services.driver_pairs('anna')

		self.assertEqual(len(result['pairs']), 1)
		self.assertEqual(result['pairs'][0]['client']['name'], 'Anna Client')


class RideAndDriverListTests(BackofficeTestBase):
	def test_ride_list_search_and_status(self):
		self.make_ride(self.client_a, self.driver)
		self.make_ride(self.client_b, status='pending', payment_status='pending')

		request = self.factory.get('/api/backoffice/rides/', {'status': 'pending'})
		force_authenticate(request, user=self.admin)
		response = RideListView.as_view()(request)
		self.assertEqual(response.data['count'], 1)

		request = self.factory.get('/api/backoffice/rides/', {'search': 'dritan'})
		force_authenticate(request, user=self.admin)
		response = RideListView.as_view()(request)
		self.assertEqual(response.data['count'], 1)

	def test_clients_cannot_use_backoffice(self):
		self.assertEqual(self.call(RideListView, 'get', self.client_a).status_code, 403)

	def test_driver_list_includes_subscription(self):
		DriverSubscription.objects.create(
			driver=self.driver, status='free', is_free_access=True, expires_at=timezone.now() + timedelta(days=3),
		)

		response = self.call(DriverListView, 'get', self.admin)

		rows = {row['id']: row for row in response.data['drivers']}
		self.assertEqual(rows[self.driver.id]['subscription_status'], 'free')
		self.assertTrue(rows[self.driver.id]['is_free_access'])
		self.assertIsNone(rows[self.other_driver.id]['subscription_status'])

	def test_block_and_unblock(self):
		response = self.call(DriverBlockView, 'post', self.admin, {'blocked': True}, driver_id=self.driver.id)
		self.assertEqual(response.status_code, 200)
		self.driver.refresh_from_db()
		self.assertTrue(self.driver.admin_blocked)

		self.call(DriverBlockView, 'post', self.admin, {'blocked': False}, driver_id=self.driver.id)
		self.driver.refresh_from_db()
		self.assertFalse(self.driver.admin_blocked)

	def test_block_only_targets_drivers(self):
		response = self.call(DriverBlockView, 'post', self.admin, {'blocked': True}, driver_id=self.client_a.id)

		self.assertEqual(response.status_code, 404)


class VerificationReviewTests(BackofficeTestBase):
	def test_reject_with_note(self):
		verification = DriverVerification.objects.create(
			driver=self.driver,
			id_document_type='passport',
			id_document_number='P1',
			id_front='driver-verifications/front.pdf',
			license_number='L1',
			license_file='driver-verifications/license.pdf',
			vehicle_plate='AA 1',
		)

		response = self.call(
			VerificationReviewView, 'post', self.admin, {'action': 'reject', 'note': 'Expired licence'},
			verification_id=verification.id,
		)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'rejected')
		self.assertEqual(response.data['admin_note'], 'Expired licence')
		self.assertIsNone(response.data['documents']['id_back'])
		self.driver.refresh_from_db()
		self.assertFalse(self.driver.admin_approved)


class OwnerTests(BackofficeTestBase):
	def test_overview_stats(self):
		self.make_ride(self.client_a, self.driver, price='10.00')
		self.make_ride(self.client_b, self.driver, price='5.00')
		self.make_ride(self.client_b, self.driver, price='7.00', payment_status='pending')
		DriverSubscription.objects.create(driver=self.other_driver, status='expired')

		response = self.call(OwnerStatsView, 'get', self.owner)

		self.assertEqual(response.data['total_rides'], 3)
		self.assertEqual(response.data['revenue'], Decimal('15.00'))
		self.assertEqual(response.data['drivers'], 2)
		self.assertEqual(response.data['clients'], 2)
		self.assertEqual(response.data['expired_subscriptions'], 1)

	def test_admin_cannot_see_owner_stats(self):
		self.assertEqual(self.call(OwnerStatsView, 'get', self.admin).status_code, 403)

	def test_grant_and_revoke_free_access(self):
		response = self.call(FreeAccessView, 'post', self.owner, {'days': 7, 'reason': 'launch'}, driver_id=self.driver.id)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'free')
		self.assertEqual(response.data['days_remaining'], 7)

		response = self.call(FreeAccessView, 'delete', self.owner, driver_id=self.driver.id)

		self.assertEqual(response.data['status'], 'expired')
		self.assertFalse(response.data['is_free_access'])

	def test_affiliate_stats(self):
		affiliate = User.objects.create_user(username='aff', password='x', role='affiliate')
		code = ensure_affiliate_code(affiliate).code
		self.client_a.referred_by_code = code
		self.client_a.save()

		response = self.call(AffiliateStatsView, 'get', self.admin)

		self.assertEqual(response.data['totals'], {'affiliates': 1, 'referred_clients': 1})
		self.assertEqual(response.data['affiliates'][0]['code'], code)
		self.assertIsNotNone(response.data['affiliates'][0]['last_signup'])
