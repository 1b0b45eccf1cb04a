from django.test import TestCase
from rest_framework.test import APIRequestFactory
from unittest.mock import patch

import redis

from .views import health_check


class HealthCheckTests(TestCase):
	@patch('supertez_backend.views.redis.Redis')
	def test_all_services_healthy(self, mock_redis):
		response = health_check(APIRequestFactory().get('/health/'))

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'healthy')
		self.assertEqual(set(response.data['services']), {'database', 'redis', 'channels', 'celery'})
		mock_redis.return_value.ping.assert_called_once()

	@patch('supertez_backend.views.redis.Redis')
	def test_redis_down_is_unhealthy(self, mock_redis):
		mock_redis.return_value.ping.side_effect = redis.ConnectionError('refused')

		response = health_check(APIRequestFactory().get('/health/'))

		self.assertEqual(response.status_code, 503)
		self.assertTrue(response.data['services']['redis'].startswith('unhealthy'))
		self.assertEqual(response.data['services']['database'], 'healthy')
