from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from .models import AppSettings
from .services import calculate_price, estimate_eta_minutes, ride_distance_km
from .views import AppSettingsView

TIRANA = (41.3275, 19.8187)
DURRES = (41.3231, 19.4414)


class PricingTests(TestCase):
	def setUp(self):
		self.settings = AppSettings.load()

	def test_settings_is_a_singleton(self):
		AppSettings(app_name='Other').save()
		self.assertEqual(AppSettings.objects.count(), 1)
		self.assertEqual(AppSettings.load().app_name, 'Other')

	def test_fixed_price_scales_with_passengers(self):
		self.settings.fixed_price_amount = Decimal('7.50')
		self.assertEqual(calculate_price(self.settings, passengers=1), Decimal('8'))
		self.assertEqual(calculate_price(self.settings, passengers=3), Decimal('23'))

	def test_passengers_below_one_count_as_one(self):
		self.settings.fixed_price_amount = Decimal('10')
		self.assertEqual(calculate_price(self.settings, passengers=0), Decimal('10'))
		self.assertEqual(calculate_price(self.settings, passengers='x'), Decimal('10'))

	def test_distance_price(self):
		self.settings.pricing_mode = 'distance'
		self.settings.price_per_km = Decimal('2.00')

		price = calculate_price(self.settings, TIRANA, DURRES, passengers=1)

		self.assertEqual(price, Decimal('63'))

	def test_eta(self):
		self.assertEqual(estimate_eta_minutes(15), 30)
		self.assertEqual(estimate_eta_minutes(0.01), 1)
		self.assertEqual(estimate_eta_minutes(1.1), 2)
		self.assertEqual(estimate_eta_minutes(1.25), 3)
		self.assertEqual(estimate_eta_minutes(10, speed_kmh=60), 10)
		self.assertEqual(estimate_eta_minutes(10, speed_kmh=2), 20)
		self.assertEqual(estimate_eta_minutes(10, speed_kmh=3), 20)
		self.assertIsNone(estimate_eta_minutes(0))
		self.assertIsNone(estimate_eta_minutes(None))
		self.assertIsNone(ride_distance_km(TIRANA, None))


class AppSettingsViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.owner = User.objects.create_user(username='owner', password='pass1234', role='owner')
		self.admin = User.objects.create_user(username='admin', password='pass1234', role='admin')

	def test_anyone_can_read(self):
		response = AppSettingsView.as_view()(self.factory.get('/api/settings/'))

		self.assertEqual(response.status_code, 200)
		self.assertIn('pricing_mode', response.data)
		self.assertNotIn('paypal_plan_id', response.data)

	def test_owner_updates_settings(self):
		request = self.factory.patch('/api/settings/', {'pricing_mode': 'distance', 'price_per_km': '1.50'}, format='json')
		force_authenticate(request, user=self.owner)
		response = AppSettingsView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(AppSettings.load().pricing_mode, 'distance')

	def test_admin_cannot_update_settings(self):
		request = self.factory.patch('/api/settings/', {'pricing_mode': 'distance'}, format='json')
		force_authenticate(request, user=self.admin)
		response = AppSettingsView.as_view()(request)

		self.assertEqual(response.status_code, 403)

	def test_negative_price_rejected(self):
		request = self.factory.patch('/api/settings/', {'fixed_price_amount': '-1'}, format='json')
		force_authenticate(request, user=self.owner)
		response = AppSettingsView.as_view()(request)

		self.assertEqual(response.status_code, 400)

	def test_subscription_currency_must_be_paypal_supported(self):
		request = self.factory.patch('/api/settings/', {'subscription_currency': 'ALL'}, format='json')
		force_authenticate(request, user=self.owner)
		response = AppSettingsView.as_view()(request)

		self.assertEqual(response.status_code, 400)
		self.assertIn('subscription_currency', response.data)

		request = self.factory.patch('/api/settings/', {'subscription_currency': 'eur'}, format='json')
		force_authenticate(request, user=self.owner)
		response = AppSettingsView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(AppSettings.load().subscription_currency, 'EUR')
