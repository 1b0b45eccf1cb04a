from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import patch

from accounts.models import User
from . import services
from .models import AffiliateCode
from .views import AffiliateCodeView, AffiliateReferralsView


class AffiliateCodeTests(TestCase):
	def setUp(self):
		self.affiliate = User.objects.create_user(username='aff', password='pass1234', role='affiliate')

	def test_code_is_stable(self):
		first = services.ensure_affiliate_code(self.affiliate)
		second = services.ensure_affiliate_code(self.affiliate)

		self.assertEqual(first.pk, second.pk)
		self.assertRegex(first.code, r'^STZ-[A-Z0-9]{8}$')

	def test_collision_retries(self):
		other = User.objects.create_user(username='other', password='pass1234', role='affiliate')
		AffiliateCode.objects.create(affiliate=other, code='STZ-TAKEN000')

		with patch.object(services, 'generate_code', side_effect=['STZ-TAKEN000', 'STZ-FREE0000']):
			code = services.ensure_affiliate_code(self.affiliate)

		self.assertEqual(code.code, 'STZ-FREE0000')

	def test_gives_up_after_three_collisions(self):
		other = User.objects.create_user(username='other', password='pass1234', role='affiliate')
		AffiliateCode.objects.create(affiliate=other, code='STZ-TAKEN000')

		with patch.object(services, 'generate_code', return_value='STZ-TAKEN000') as mock_generate:
			with self.assertRaises(services.AffiliateCodeError):
				services.ensure_affiliate_code(self.affiliate)

		self.assertEqual(mock_generate.call_count, 3)

	def test_resolve_referral_code(self):
		code = services.ensure_affiliate_code(self.affiliate).code

		self.assertEqual(services.resolve_referral_code(f'  {code.lower()} '), code)
		self.assertIsNone(services.resolve_referral_code('STZ-UNKNOWN1'))
		self.assertIsNone(services.resolve_referral_code(''))


class AffiliateViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.affiliate = User.objects.create_user(username='aff', password='pass1234', role='affiliate')
		self.code = services.ensure_affiliate_code(self.affiliate).code

	def get(self, view, user):
		request = self.factory.get('/api/affiliate/')
		force_authenticate(request, user=user)
		return view.as_view()(request)

	def test_referral_link(self):
		with self.settings(FRONTEND_URL='https://app.supertez.test/'):
			response = self.get(AffiliateCodeView, self.affiliate)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(
			response.data['referral_link'],
			f'https://app.supertez.test/register?role=client&ref={self.code}',
		)

	def test_referred_clients_only(self):
		User.objects.create_user(username='c1', password='x', role='client', referred_by_code=self.code)
		User.objects.create_user(username='d1', password='x', role='driver', referred_by_code=self.code)
		User.objects.create_user(username='c2', password='x', role='client')

		response = self.get(AffiliateReferralsView, self.affiliate)

		self.assertEqual(response.data['count'], 1)
		self.assertEqual(response.data['clients'][0]['id'], User.objects.get(username='c1').id)

	def test_clients_are_forbidden(self):
		client = User.objects.create_user(username='client', password='x', role='client')

		self.assertEqual(self.get(AffiliateCodeView, client).status_code, 403)
