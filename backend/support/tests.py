from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import patch

from accounts.models import User
from .models import SupportMessage, SupportThread
from .views import MySupportThreadView, SupportThreadCloseView, SupportThreadDetailView, SupportThreadListView


class SupportThreadTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.client_user = User.objects.create_user(username='client', password='pass1234', role='client')
		self.admin = User.objects.create_user(username='admin', password='pass1234', role='admin')
		self.affiliate = User.objects.create_user(username='aff', password='pass1234', role='affiliate')

	def call(self, view, method, user, data=None, **kwargs):
		request = getattr(self.factory, method)('/api/support/', data or {}, format='json')
		force_authenticate(request, user=user)
		return view.as_view()(request, **kwargs)

	def test_thread_created_on_first_visit(self):
		response = self.call(MySupportThreadView, 'get', self.client_user)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['thread']['status'], 'open')
		self.assertEqual(response.data['messages'], [])
		self.assertEqual(SupportThread.objects.filter(user=self.client_user).count(), 1)

	def test_affiliates_have_no_support_thread(self):
		response = self.call(MySupportThreadView, 'get', self.affiliate)

		self.assertEqual(response.status_code, 403)

	def test_client_message_reopens_closed_thread(self):
		thread = SupportThread.objects.create(user=self.client_user, status='closed')

		response = self.call(MySupportThreadView, 'post', self.client_user, {'message': 'My driver never came'})

		self.assertEqual(response.status_code, 201)
		thread.refresh_from_db()
		self.assertEqual(thread.status, 'open')
		self.assertEqual(SupportMessage.objects.get().sender_role, 'client')

	def test_admin_reply_notifies_owner(self):
		thread = SupportThread.objects.create(user=self.client_user)

		with patch('realtime.notifications.notify_user_event') as mock_notify:
			with self.captureOnCommitCallbacks(execute=True):
				response = self.call(SupportThreadDetailView, 'post', self.admin, {'message': 'Sorry about that'},
									 thread_id=thread.id)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['sender_role'], 'admin')
		mock_notify.assert_called_once()
		self.assertEqual(mock_notify.call_args[0][:2], (self.client_user.id, 'support_message'))

	def test_admin_lists_and_closes_threads(self):
		open_thread = SupportThread.objects.create(user=self.client_user)
		other = User.objects.create_user(username='driver', password='pass1234', role='driver')
		SupportThread.objects.create(user=other, status='closed')

		response = self.call(SupportThreadListView, 'get', self.admin)
		self.assertEqual(response.data['count'], 2)

		request = self.factory.get('/api/support/threads/', {'status': 'open'})
		force_authenticate(request, user=self.admin)
		response = SupportThreadListView.as_view()(request)
		self.assertEqual([t['id'] for t in response.data['threads']], [open_thread.id])

		response = self.call(SupportThreadCloseView, 'post', self.admin, thread_id=open_thread.id)
		self.assertEqual(response.status_code, 200)
		open_thread.refresh_from_db()
		self.assertEqual(open_thread.status, 'closed')

	def test_clients_cannot_list_threads(self):
		response = self.call(SupportThreadListView, 'get', self.client_user)

		self.assertEqual(response.status_code, 403)
