from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from affiliates.models import AffiliateCode
from drivers.models import DriverProfile
from pricing.models import AppSettings
from subscriptions.models import DriverSubscription
from .models import User
from .views import ChangePasswordView, LoginView, MeView, RefreshTokenView, RegisterView


class RegistrationTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	def register(self, **overrides):
		data = {
			'username': 'new_user',
			'email': 'new@example.com',
			'password': 'secret123',
			'role': 'client',
			'full_name': 'New User',
			'phone_number': '+355690000001',
		}
		data.update(overrides)
		request = self.factory.post('/api/auth/register/', data, format='json')
		return RegisterView.as_view()(request)

	def test_client_registration_returns_tokens(self):
		response = self.register()

		self.assertEqual(response.status_code, 201)
		self.assertIn('access', response.data['tokens'])
		self.assertEqual(response.data['user']['role'], 'client')

	def test_phone_required_for_clients_and_drivers(self):
		response = self.register(phone_number='  ')
		self.assertEqual(response.status_code, 400)
		self.assertIn('phone_number', response.data)

		response = self.register(role='affiliate', phone_number='')
		self.assertEqual(response.status_code, 201)

	def test_owner_and_admin_cannot_self_register(self):
		for role in ('owner', 'admin'):
			response = self.register(role=role, username=role, email=f'{role}@example.com')
			self.assertEqual(response.status_code, 400)

	def test_duplicate_email_rejected(self):
		self.register()
		response = self.register(username='other', email='NEW@example.com')

		self.assertEqual(response.status_code, 400)
		self.assertIn('email', response.data)

	def test_driver_gets_profile_and_free_access(self):
		settings = AppSettings.load()
		settings.default_free_days = 14
		settings.save()

		response = self.register(role='driver', username='driver', email='driver@example.com')

		self.assertEqual(response.status_code, 201)
		driver = User.objects.get(username='driver')
		self.assertTrue(DriverProfile.objects.filter(user=driver).exists())
		subscription = DriverSubscription.objects.get(driver=driver)
		self.assertEqual(subscription.status, 'free')
		self.assertEqual(subscription.free_days_granted, 14)
		self.assertFalse(driver.admin_approved)

	def test_no_free_access_when_disabled(self):
		settings = AppSettings.load()
		settings.enable_free_driver_access = False
		settings.save()

		self.register(role='driver', username='driver', email='driver@example.com')

		self.assertFalse(DriverSubscription.objects.filter(driver__username='driver').exists())

	def test_affiliate_gets_code_and_referral_is_recorded(self):
		self.register(role='affiliate', username='aff', email='aff@example.com', phone_number='')
		code = AffiliateCode.objects.get(affiliate__username='aff').code
		self.assertRegex(code, r'^STZ-[A-Z0-9]{8}$')

		self.register(ref=code.lower())

		self.assertEqual(User.objects.get(username='new_user').referred_by_code, code)

	def test_unknown_referral_code_is_ignored(self):
		response = self.register(ref='STZ-NOPE0000')

		self.assertEqual(response.status_code, 201)
		self.assertEqual(User.objects.get(username='new_user').referred_by_code, '')


class AuthenticationTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.user = User.objects.create_user(
			username='client', email='client@example.com', password='pass1234',
			role='client', phone_number='+355690000002',
		)

	def test_login_with_username_or_email(self):
		for identifier in ('client', 'client@example.com'):
			request = self.factory.post('/api/auth/login/', {'username': identifier, 'password': 'pass1234'}, format='json')
			response = LoginView.as_view()(request)
			self.assertEqual(response.status_code, 200, identifier)

	def test_login_rejects_bad_password(self):
		request = self.factory.post('/api/auth/login/', {'username': 'client', 'password': 'wrong'}, format='json')
		response = LoginView.as_view()(request)

		self.assertEqual(response.status_code, 400)

	def test_refresh_rejects_garbage(self):
		request = self.factory.post('/api/auth/refresh/', {'refresh': 'garbage'}, format='json')
		response = RefreshTokenView.as_view()(request)

		self.assertEqual(response.status_code, 401)

	def test_phone_cannot_be_cleared(self):
		request = self.factory.patch('/api/auth/me/', {'phone_number': ''}, format='json')
		force_authenticate(request, user=self.user)
		response = MeView.as_view()(request)

		self.assertEqual(response.status_code, 400)

	def test_update_profile(self):
		request = self.factory.patch('/api/auth/me/', {'city': 'Durres'}, format='json')
		force_authenticate(request, user=self.user)
		response = MeView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['city'], 'Durres')

	def test_change_password_requires_current(self):
		request = self.factory.post('/api/auth/me/password/', {
			'current_password': 'wrong',
			'new_password': 'newpass123',
			'confirm_password': 'newpass123',
		}, format='json')
		force_authenticate(request, user=self.user)
		response = ChangePasswordView.as_view()(request)

		self.assertEqual(response.status_code, 400)
		self.user.refresh_from_db()
		self.assertTrue(self.user.check_password('pass1234'))
