from decimal import Decimal

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import User
from rides.models import Ride, RideMessage
from .consumers import NotificationConsumer, RideConsumer
from .middleware import get_user_for_token
from .notifications import DRIVERS_GROUP, notify_drivers_new_ride, notify_ride_group, notify_user_event


class NotificationHelperTests(TestCase):
	def setUp(self):
		self.layer = get_channel_layer()
		self.channel = async_to_sync(self.layer.new_channel)()

	def listen(self, group):
		async_to_sync(self.layer.group_add)(group, self.channel)

	def receive(self):
		return async_to_sync(self.layer.receive)(self.channel)

	def test_user_event(self):
		self.listen('user_7')

		self.assertTrue(notify_user_event(7, 'new_offer', {'offer': {'id': 1}}))

		message = self.receive()
		self.assertEqual(message['type'], 'user.event')
		self.assertEqual(message['event'], 'new_offer')
		self.assertEqual(message['payload'], {'offer': {'id': 1}})

	def test_ride_event_and_driver_broadcast(self):
		self.listen('ride_3')
		notify_ride_group(3, 'driver_location', {'latitude': 1.0})
		self.assertEqual(self.receive()['ride_id'], 3)

		self.listen(DRIVERS_GROUP)
		notify_drivers_new_ride({'id': 3})
		self.assertEqual(self.receive()['event'], 'new_ride')


class SocketAuthTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user(username='client', password='pass1234', role='client')

	def test_valid_token(self):
		token = str(AccessToken.for_user(self.user))
		self.assertEqual(async_to_sync(get_user_for_token)(token), self.user)

	def test_blocked_user_and_garbage_token(self):
		token = str(AccessToken.for_user(self.user))
		self.user.admin_blocked = True
		self.user.save()

		self.assertIsInstance(async_to_sync(get_user_for_token)(token), AnonymousUser)
		self.assertIsInstance(async_to_sync(get_user_for_token)('garbage'), AnonymousUser)


class ConsumerTests(TestCase):
	def setUp(self):
		self.client_user = User.objects.create_user(username='client', password='pass1234', role='client')
		self.driver = User.objects.create_user(username='driver', password='pass1234', role='driver')
		self.stranger = User.objects.create_user(username='stranger', password='pass1234', role='client')
		self.ride = Ride.objects.create(
			client=self.client_user, driver=self.driver, status='driver_assigned',
			pickup_lat=Decimal('41.3'), pickup_lng=Decimal('19.8'), base_price=Decimal('10'),
		)

	async def connect(self, consumer, path, user):
		communicator = WebsocketCommunicator(consumer.as_asgi(), path)
		communicator.scope['user'] = user
		connected, _ = await communicator.connect()
		self.assertTrue(connected)
		greeting = await communicator.receive_json_from()
		self.assertEqual(greeting['type'], 'connection_established')
		return communicator

	async def test_anonymous_socket_is_closed(self):
		communicator = WebsocketCommunicator(NotificationConsumer.as_asgi(), '/ws/notifications/')
		communicator.scope['user'] = AnonymousUser()
		connected, _ = await communicator.connect()
		self.assertFalse(connected)

	async def test_driver_receives_new_ride_broadcast(self):
		communicator = await self.connect(NotificationConsumer, '/ws/notifications/', self.driver)

		await get_channel_layer().group_send(DRIVERS_GROUP, {
			'type': 'user.event', 'event': 'new_ride', 'payload': {'ride': {'id': 1}},
		})

		message = await communicator.receive_json_from()
		self.assertEqual(message, {'type': 'new_ride', 'ride': {'id': 1}})
		await communicator.disconnect()

	async def test_participant_tracks_ride(self):
		communicator = await self.connect(RideConsumer, '/ws/ride/', self.client_user)

		await communicator.send_json_to({'type': 'start_tracking', 'ride_id': self.ride.id})
		self.assertEqual(await communicator.receive_json_from(), {'type': 'tracking_started', 'ride_id': self.ride.id})

		await get_channel_layer().group_send(f'ride_{self.ride.id}', {
			'type': 'ride.event', 'event': 'driver_arrived', 'ride_id': self.ride.id, 'payload': {'message': 'Here'},
		})
		message = await communicator.receive_json_from()
		self.assertEqual(message['type'], 'driver_arrived')
		self.assertEqual(message['message'], 'Here')
		await communicator.disconnect()

	async def test_stranger_cannot_track_ride(self):
		communicator = await self.connect(RideConsumer, '/ws/ride/', self.stranger)

		await communicator.send_json_to({'type': 'start_tracking', 'ride_id': self.ride.id})

		message = await communicator.receive_json_from()
		self.assertEqual(message['type'], 'error')
		await communicator.disconnect()

	async def test_clients_cannot_send_positions(self):
		communicator = await self.connect(RideConsumer, '/ws/ride/', self.client_user)

		await communicator.send_json_to({'type': 'tracking_update', 'ride_id': self.ride.id, 'latitude': 1, 'longitude': 2})

		message = await communicator.receive_json_from()
		self.assertEqual(message, {'type': 'error', 'message': 'Only drivers can send tracking updates'})
		await communicator.disconnect()

	async def test_blocked_driver_cannot_send_positions(self):
		communicator = await self.connect(RideConsumer, '/ws/ride/', self.driver)
		await database_sync_to_async(User.objects.filter(pk=self.driver.pk).update)(admin_blocked=True)

		await communicator.send_json_to({'type': 'tracking_update', 'ride_id': self.ride.id, 'latitude': 41.31, 'longitude': 19.81})

		message = await communicator.receive_json_from()
		self.assertEqual(message, {'type': 'error', 'message': 'Your account has been blocked by an administrator.'})
		ride = await database_sync_to_async(Ride.objects.get)(pk=self.ride.pk)
		self.assertIsNone(ride.driver_lat)
		await communicator.disconnect()

	async def test_chat_rejects_empty_and_oversized_messages(self):
		communicator = await self.connect(RideConsumer, '/ws/ride/', self.client_user)

		await communicator.send_json_to({'type': 'chat_message', 'ride_id': self.ride.id, 'message': '  '})
		message = await communicator.receive_json_from()
		self.assertEqual(message, {'type': 'error', 'message': 'chat_message requires ride_id and message'})

		await communicator.send_json_to({'type': 'chat_message', 'ride_id': self.ride.id, 'message': 'x' * 2001})
		message = await communicator.receive_json_from()
		self.assertEqual(message, {'type': 'error', 'message': 'Message must be between 1 and 2000 characters'})

		count = await database_sync_to_async(RideMessage.objects.filter(ride_id=self.ride.pk).count)()
		self.assertEqual(count, 0)
		await communicator.disconnect()
