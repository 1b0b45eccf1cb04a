from decimal import Decimal

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIRequestFactory
from unittest.mock import MagicMock, patch

import requests

from .messaging import MessagingError, normalize_phone, send_email, send_sms
from .utils import calculate_distance_km, has_coordinates
from .utils.currency import (
	format_currency,
	get_exchange_rate,
	normalize_currency,
	resolve_currency_for_country,
	round_amount,
)
from .utils.ip_location import detect_location_from_ip, parse_ip_location
from .views import currency_for_country, exchange_rate


def fake_response(payload, ok=True, status_code=200):
	response = MagicMock()
	response.ok = ok
	response.status_code = status_code
	response.json.return_value = payload
	return response


def html_response(status_code=200):
	response = MagicMock()
	response.ok = status_code < 400
	response.status_code = status_code
	response.json.side_effect = ValueError("Expecting value")
	return response


class GeoTests(SimpleTestCase):
	def test_distance_between_known_points(self):
		# Tirana -> Durres is roughly 31 km
		distance = calculate_distance_km(41.3275, 19.8187, 41.3231, 19.4414)
		self.assertAlmostEqual(distance, 31.5, delta=2)

	def test_zero_distance(self):
		self.assertEqual(calculate_distance_km(10, 10, 10, 10), 0)

	def test_has_coordinates(self):
		self.assertTrue(has_coordinates(41.3, '19.8', Decimal('1.0')))
		self.assertFalse(has_coordinates(41.3, None))
		self.assertFalse(has_coordinates('', 19.8))
		self.assertFalse(has_coordinates('abc'))


class CurrencyTests(TestCase):
	def setUp(self):
		cache.clear()

	def test_normalize_currency_falls_back(self):
		self.assertEqual(normalize_currency('eur'), 'EUR')
		self.assertEqual(normalize_currency('ALL', 'GBP'), 'GBP')
		self.assertEqual(normalize_currency('ALL', 'XYZ'), 'USD')
		self.assertEqual(normalize_currency(None), 'USD')

	def test_zero_decimal_rounding(self):
		self.assertEqual(round_amount('1234.5', 'JPY'), Decimal('1235'))
		self.assertEqual(round_amount('12.345', 'USD'), Decimal('12.35'))
		self.assertEqual(format_currency('1234.5', 'HUF'), '1,235 HUF')
		self.assertEqual(format_currency('1234.5', 'EUR'), '1,234.50 EUR')

	@patch('common.utils.currency.requests.get')
	def test_country_currency_unsupported_by_paypal(self, mock_get):
		mock_get.return_value = fake_response({'currencies': {'ALL': {'name': 'Albanian lek'}}})

		result = resolve_currency_for_country('al', 'EUR')

		self.assertEqual(result, {'currency': 'EUR', 'raw': 'ALL', 'is_fallback': True})

	@patch('common.utils.currency.requests.get')
	def test_country_currency_is_cached(self, mock_get):
		mock_get.return_value = fake_response([{'currencies': {'EUR': {}}}])

		first = resolve_currency_for_country('DE')
		second = resolve_currency_for_country('DE')

		self.assertEqual(first, {'currency': 'EUR', 'raw': 'EUR', 'is_fallback': False})
		self.assertEqual(first, second)
		mock_get.assert_called_once()

	@patch('common.utils.currency.requests.get')
	def test_exchange_rate(self, mock_get):
		mock_get.return_value = fake_response({'result': 'success', 'rates': {'EUR': 0.92, 'USD': 1}})

		self.assertEqual(get_exchange_rate('usd', 'eur'), 0.92)
		self.assertIsNone(get_exchange_rate('usd', 'xyz'))
		self.assertEqual(get_exchange_rate('EUR', 'EUR'), 1.0)

	@patch('common.utils.currency.requests.get', side_effect=requests.ConnectionError)
	def test_exchange_rate_view_unavailable(self, mock_get):
		request = APIRequestFactory().get('/api/geo/rate/', {'base': 'USD', 'target': 'EUR'})
		response = exchange_rate(request)

		self.assertEqual(response.status_code, 502)

	@patch('common.utils.currency.requests.get', return_value=html_response())
	def test_country_currency_survives_non_json_body(self, mock_get):
		request = APIRequestFactory().get('/api/geo/currency/', {'country': 'AL', 'fallback': 'EUR'})
		response = currency_for_country(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data, {'currency': 'EUR', 'raw': None, 'is_fallback': True})

	@patch('common.utils.currency.requests.get', return_value=html_response())
	def test_exchange_rate_survives_non_json_body(self, mock_get):
		self.assertIsNone(get_exchange_rate('USD', 'EUR'))

		request = APIRequestFactory().get('/api/geo/rate/', {'base': 'USD', 'target': 'EUR'})
		response = exchange_rate(request)

		self.assertEqual(response.status_code, 502)

	def test_exchange_rate_view_requires_params(self):
		request = APIRequestFactory().get('/api/geo/rate/', {'base': 'USD'})
		response = exchange_rate(request)

		self.assertEqual(response.status_code, 400)


class IpLocationTests(SimpleTestCase):
	def test_parse_loc_string(self):
		location = parse_ip_location({'city': 'Tirana', 'country': 'al', 'loc': '41.3275,19.8187'})
		self.assertEqual(location, {'city': 'Tirana', 'country_code': 'AL', 'lat': 41.3275, 'lng': 19.8187})

	def test_parse_failure_payload(self):
		self.assertIsNone(parse_ip_location({'success': False}))
		self.assertIsNone(parse_ip_location('nope'))

	@patch('common.utils.ip_location.requests.get')
	def test_falls_through_providers(self, mock_get):
		mock_get.side_effect = [
			requests.Timeout(),
			fake_response({'success': False}),
			fake_response({'city': 'Durres', 'country': 'AL', 'loc': '41.3,19.4'}),
		]

		location = detect_location_from_ip('1.2.3.4')

		self.assertEqual(location['city'], 'Durres')
		self.assertEqual(mock_get.call_count, 3)


class MessagingTests(SimpleTestCase):
	def test_normalize_phone(self):
		self.assertEqual(normalize_phone(' +355 69 123 '), '+355 69 123')
		self.assertEqual(normalize_phone('00 355-69'), '+0035569')
		self.assertEqual(normalize_phone(None), '')

	@patch('common.messaging.resend.Emails.send', return_value={'id': 'email_1'})
	def test_send_email(self, mock_send):
		self.assertEqual(send_email('driver@example.com', 'Hi', '<p>Hi</p>', 'Hi'), 'email_1')
		payload = mock_send.call_args[0][0]
		self.assertEqual(payload['to'], ['driver@example.com'])
		self.assertEqual(payload['text'], 'Hi')

	@patch('common.messaging.resend.Emails.send', side_effect=Exception('boom'))
	def test_send_email_failure_raises_messaging_error(self, mock_send):
		with self.assertRaises(MessagingError):
			send_email('driver@example.com', 'Hi', '<p>Hi</p>')

	@patch('common.messaging.requests.post')
	def test_send_sms_rejected(self, mock_post):
		mock_post.return_value = MagicMock(ok=False, text='invalid number')

		with self.assertRaises(MessagingError):
			send_sms('+1', 'hello')
