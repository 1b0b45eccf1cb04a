from datetime import timedelta
from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import MagicMock, patch

from accounts.models import User
from common.messaging import MessagingError
from pricing.models import AppSettings
from . import services
from .exceptions import SubscriptionConfigError, SubscriptionNotActiveError, SubscriptionProviderError
from .google_play import GooglePlayService, parse_service_account
from .models import DriverSubscription
from .paypal import PayPalService
from .tasks import expire_subscriptions_task
from .views import PayPalCreateView, PayPalVerifyView, SubscriptionStateView


def paypal_response(payload, ok=True, status_code=200):
	response = MagicMock()
	response.ok = ok
	response.status_code = status_code
	response.json.return_value = payload
	return response


TOKEN_RESPONSE = paypal_response({'access_token': 'paypal-token'})


class SubscriptionModelTests(TestCase):
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='pass1234', role='driver')

	def test_free_access_is_active(self):
		subscription = services.grant_free_access(self.driver, 10, reason='promo')

		self.assertEqual(subscription.status, 'free')
		self.assertTrue(subscription.is_active)
		self.assertEqual(subscription.days_remaining, 10)

	def test_paid_subscription_expires_with_time(self):
		subscription = DriverSubscription.objects.create(
			driver=self.driver, status='active', expires_at=timezone.now() - timedelta(minutes=1),
		)
		self.assertFalse(subscription.is_active)
		self.assertEqual(subscription.days_remaining, 0)

	def test_revoke_free_access(self):
		services.grant_free_access(self.driver, 10)
		subscription = services.revoke_free_access(self.driver)

		self.assertEqual(subscription.status, 'expired')
		self.assertFalse(subscription.is_active)


class ExpirySweepTests(TestCase):
	def setUp(self):
		now = timezone.now()
		self.lapsed_paid = DriverSubscription.objects.create(
			driver=User.objects.create_user(username='d1', password='x', role='driver'),
			status='active', expires_at=now - timedelta(hours=1),
		)
		self.lapsed_free = DriverSubscription.objects.create(
			driver=User.objects.create_user(username='d2', password='x', role='driver'),
			status='free', is_free_access=True, expires_at=now - timedelta(hours=1),
		)
		self.current = DriverSubscription.objects.create(
			driver=User.objects.create_user(username='d3', password='x', role='driver'),
			status='active', expires_at=now + timedelta(days=3),
		)

	def test_sweep_expires_lapsed_only(self):
		self.assertEqual(services.expire_subscriptions(), 2)

		for sub in (self.lapsed_paid, self.lapsed_free, self.current):
			sub.refresh_from_db()
		self.assertEqual(self.lapsed_paid.status, 'expired')
		self.assertEqual(self.lapsed_free.status, 'expired')
		self.assertFalse(self.lapsed_free.is_free_access)
		self.assertEqual(self.current.status, 'active')

	def test_task_and_command(self):
		self.assertEqual(expire_subscriptions_task.delay().get(), 2)
		call_command('expire_subscriptions')


class ReminderTests(TestCase):
	def setUp(self):
		now = timezone.now()
		for index, (email, phone) in enumerate([('a@example.com', '355 69 1'), ('b@example.com', ''), ('', '+3556')]):
			driver = User.objects.create_user(
				username=f'driver{index}', password='x', role='driver', email=email, phone_number=phone,
			)
			DriverSubscription.objects.create(driver=driver, status='active', expires_at=now + timedelta(days=1))
		far = User.objects.create_user(username='far', password='x', role='driver', email='far@example.com')
		DriverSubscription.objects.create(driver=far, status='active', expires_at=now + timedelta(days=20))

	@patch('subscriptions.services.send_email')
	def test_email_failures_are_counted(self, mock_send):
		mock_send.side_effect = [None, MessagingError('bounced')]

		result = services.send_expiry_reminder_emails(days=3)

		self.assertEqual(result, {'sent': 1, 'failed': 1, 'total': 3})

	@patch('subscriptions.services.send_sms')
	def test_sms_uses_normalised_numbers(self, mock_send):
		result = services.send_expiry_reminder_sms(days=3)

		self.assertEqual(result['sent'], 2)
		numbers = sorted(call[0][0] for call in mock_send.call_args_list)
		self.assertEqual(numbers, ['+3556', '+355691'])

	@override_settings(RESEND_API_KEY='')
	@patch('subscriptions.management.commands.send_subscription_reminders.send_expiry_reminder_sms')
	def test_command_skips_unconfigured_channel(self, mock_sms):
		mock_sms.return_value = {'sent': 0, 'failed': 0, 'total': 0}

		call_command('send_subscription_reminders')

		mock_sms.assert_called_once_with(None)


class PayPalTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.driver = User.objects.create_user(
			username='driver', password='pass1234', role='driver', email='driver@example.com',
		)

	@override_settings(PAYPAL_CLIENT_ID='', PAYPAL_CLIENT_SECRET='')
	def test_missing_credentials(self):
		with self.assertRaises(SubscriptionConfigError):
			PayPalService()

		request = self.factory.post('/api/subscriptions/paypal/create/', {}, format='json')
		force_authenticate(request, user=self.driver)
		response = PayPalCreateView.as_view()(request)
		self.assertEqual(response.status_code, 500)

	@patch('subscriptions.paypal.requests.request')
	@patch('subscriptions.paypal.requests.post', return_value=TOKEN_RESPONSE)
	def test_checkout_creates_plan_when_none_configured(self, mock_post, mock_request):
		mock_request.side_effect = [
			paypal_response({'id': 'P-NEW'}),
			paypal_response({
				'id': 'I-SUB',
				'status': 'APPROVAL_PENDING',
				'links': [{'rel': 'approve', 'href': 'https://paypal.test/approve'}],
			}),
		]

		request = self.factory.post('/api/subscriptions/paypal/create/', {}, format='json')
		force_authenticate(request, user=self.driver)
		response = PayPalCreateView.as_view()(request)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['plan_id'], 'P-NEW')
		self.assertEqual(response.data['approve_url'], 'https://paypal.test/approve')
		plan_body = mock_request.call_args_list[0][1]['json']
		self.assertEqual(plan_body['product_id'], 'PROD-TEST')
		subscription_body = mock_request.call_args_list[1][1]['json']
		self.assertEqual(subscription_body['custom_id'], str(self.driver.id))

	@patch('subscriptions.paypal.requests.request')
	@patch('subscriptions.paypal.requests.post', return_value=TOKEN_RESPONSE)
	def test_verify_activates_subscription(self, mock_post, mock_request):
		next_billing = (timezone.now() + timedelta(days=30)).replace(microsecond=0)
		mock_request.return_value = paypal_response({
			'id': 'I-SUB',
			'status': 'ACTIVE',
			'custom_id': str(self.driver.id),
			'plan_id': 'P-1',
			'billing_info': {
				'next_billing_time': next_billing.isoformat(),
				'last_payment': {'amount': {'value': '2.00', 'currency_code': 'EUR'}},
			},
		})

		with patch('subscriptions.services.send_subscription_receipt') as mock_receipt:
			with self.captureOnCommitCallbacks(execute=True):
				request = self.factory.post('/api/subscriptions/paypal/verify/', {'subscription_id': 'I-SUB'}, format='json')
				force_authenticate(request, user=self.driver)
				response = PayPalVerifyView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['is_active'])
		mock_receipt.assert_called_once()
		subscription = DriverSubscription.objects.get(driver=self.driver)
		self.assertEqual(subscription.provider, 'paypal')
		self.assertEqual(subscription.last_payment_amount, Decimal('2.00'))
		self.assertEqual(subscription.last_payment_currency, 'EUR')
		self.assertEqual(subscription.expires_at, next_billing)

	@patch('subscriptions.paypal.requests.request')
	@patch('subscriptions.paypal.requests.post', return_value=TOKEN_RESPONSE)
	def test_verify_rejects_other_drivers_subscription(self, mock_post, mock_request):
		mock_request.return_value = paypal_response({'status': 'ACTIVE', 'custom_id': '99999'})

		with self.assertRaises(SubscriptionNotActiveError):
			services.activate_paypal_subscription(self.driver, 'I-SUB')
		self.assertFalse(DriverSubscription.objects.filter(driver=self.driver).exists())

	@patch('subscriptions.paypal.requests.request')
	@patch('subscriptions.paypal.requests.post', return_value=TOKEN_RESPONSE)
	def test_provider_error_maps_to_bad_gateway(self, mock_post, mock_request):
		mock_request.return_value = paypal_response({'message': 'Not found'}, ok=False, status_code=404)

		request = self.factory.post('/api/subscriptions/paypal/verify/', {'subscription_id': 'I-NOPE'}, format='json')
		force_authenticate(request, user=self.driver)
		response = PayPalVerifyView.as_view()(request)

		self.assertEqual(response.status_code, 502)
		self.assertEqual(response.data['provider_status'], 404)

	@patch('subscriptions.paypal.requests.request')
	@patch('subscriptions.paypal.requests.post', return_value=TOKEN_RESPONSE)
	def test_non_json_answer_maps_to_bad_gateway(self, mock_post, mock_request):
		html = MagicMock(ok=True, status_code=200)
		html.json.side_effect = ValueError('Expecting value')
		mock_request.return_value = html

		request = self.factory.post('/api/subscriptions/paypal/verify/', {'subscription_id': 'I-SUB'}, format='json')
		force_authenticate(request, user=self.driver)
		response = PayPalVerifyView.as_view()(request)

		self.assertEqual(response.status_code, 502)
		self.assertFalse(DriverSubscription.objects.filter(driver=self.driver).exists())


class GooglePlayTests(TestCase):
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='pass1234', role='driver')

	def test_service_account_raw_or_base64(self):
		raw = '{"client_email": "svc@example.com"}'
		encoded = 'eyJjbGllbnRfZW1haWwiOiAic3ZjQGV4YW1wbGUuY29tIn0='

		self.assertEqual(parse_service_account(raw)['client_email'], 'svc@example.com')
		self.assertEqual(parse_service_account(encoded)['client_email'], 'svc@example.com')
		self.assertIsNone(parse_service_account('not json'))

	@override_settings(GOOGLE_PLAY_PACKAGE_NAME='com.supertez.driver')
	@patch('subscriptions.services.GooglePlayService')
	def test_purchase_verification(self, mock_service):
		expiry = timezone.now() + timedelta(days=30)
		mock_service.return_value.get_subscription.return_value = {
			'expiryTimeMillis': str(int(expiry.timestamp() * 1000)),
			'autoRenewing': True,
			'orderId': 'GPA.1234',
			'priceAmountMicros': '2990000',
			'priceCurrencyCode': 'EUR',
		}

		subscription = services.verify_google_play_purchase(self.driver, 'token-1', 'driver_monthly')

		self.assertEqual(subscription.status, 'active')
		self.assertTrue(subscription.auto_renew)
		self.assertEqual(subscription.last_payment_amount, Decimal('2.99'))
		self.assertEqual(subscription.provider_subscription_id, 'GPA.1234')
		mock_service.return_value.get_subscription.assert_called_once_with(
			'com.supertez.driver', 'driver_monthly', 'token-1'
		)

	@patch.object(GooglePlayService, 'build_assertion', return_value='signed-assertion')
	@patch('subscriptions.google_play.requests.get')
	@patch('subscriptions.google_play.requests.post')
	def test_non_json_google_answers_are_provider_errors(self, mock_post, mock_get, mock_assertion):
		html = MagicMock(ok=False, status_code=502)
		html.json.side_effect = ValueError('Expecting value')
		mock_post.return_value = html
		service = GooglePlayService(service_account={'client_email': 'svc@example.com', 'private_key': 'key'})

		with self.assertRaises(SubscriptionProviderError) as ctx:
			service.get_access_token()
		self.assertEqual(ctx.exception.status_code, 502)

		mock_post.return_value = paypal_response({'access_token': 'google-token'})
		html_ok = MagicMock(ok=True, status_code=200)
		html_ok.json.side_effect = ValueError('Expecting value')
		mock_get.return_value = html_ok

		with self.assertRaises(SubscriptionProviderError):
			service.get_subscription('com.supertez.driver', 'driver_monthly', 'token-1')

	@override_settings(GOOGLE_PLAY_PACKAGE_NAME='')
	def test_missing_package_name(self):
		with self.assertRaises(SubscriptionConfigError):
			services.verify_google_play_purchase(self.driver, 'token-1', 'driver_monthly')


class SubscriptionStateViewTests(TestCase):
	def test_state_includes_plan_terms(self):
		driver = User.objects.create_user(username='driver', password='pass1234', role='driver')
		settings = AppSettings.load()
		settings.driver_subscription_price = Decimal('3.00')
		settings.save()

		request = APIRequestFactory().get('/api/subscriptions/me/')
		force_authenticate(request, user=driver)
		response = SubscriptionStateView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertIsNone(response.data['subscription'])
		self.assertFalse(response.data['is_active'])
		self.assertEqual(response.data['price'], Decimal('3.00'))
