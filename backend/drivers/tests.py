import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from subscriptions.services import grant_free_access
from . import services
from .models import DriverProfile, DriverVerification
from .views import DriverAccessView, DriverStatusView, DriverVerificationView, driver_document

MEDIA_ROOT = tempfile.mkdtemp()


def upload(name='doc.pdf'):
	return SimpleUploadedFile(name, b'%PDF-1.4 test document', content_type='application/pdf')


class DriverAccessTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.driver = User.objects.create_user(
			username='driver', password='pass1234', role='driver', phone_number='+355690000003',
		)
		self.profile = DriverProfile.objects.create(user=self.driver)

	def put_status(self, value):
		request = self.factory.put('/api/driver/status/', {'status': value}, format='json')
		force_authenticate(request, user=self.driver)
		return DriverStatusView.as_view()(request)

	def test_access_order_blocked_first(self):
		self.driver.admin_blocked = True
		self.driver.save()

		access = services.check_driver_access(self.driver)

		self.assertFalse(access.allowed)
		self.assertEqual(access.reason, 'blocked')

	def test_access_requires_verification_then_subscription(self):
		self.assertEqual(services.check_driver_access(self.driver).reason, 'verification_required')

		self.driver.admin_approved = True
		self.driver.save()
		self.assertEqual(services.check_driver_access(self.driver).reason, 'subscription_required')

		grant_free_access(self.driver, 5)
		access = services.check_driver_access(self.driver)
		self.assertTrue(access.allowed)
		self.assertTrue(access.subscription['is_free_access'])

	def test_cannot_go_available_without_access(self):
		response = self.put_status('available')

		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['access']['reason'], 'verification_required')
		self.profile.refresh_from_db()
		self.assertEqual(self.profile.status, 'offline')

	def test_going_offline_is_always_allowed(self):
		self.profile.status = 'available'
		self.profile.save()

		response = self.put_status('offline')

		self.assertEqual(response.status_code, 200)

	def test_access_endpoint_rejects_clients(self):
		client = User.objects.create_user(username='client', password='pass1234', role='client')
		request = self.factory.get('/api/driver/access/')
		force_authenticate(request, user=client)
		response = DriverAccessView.as_view()(request)

		self.assertEqual(response.status_code, 403)


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class VerificationTests(TestCase):
	@classmethod
	def tearDownClass(cls):
		shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
		super().tearDownClass()

	def setUp(self):
		self.factory = APIRequestFactory()
		self.driver = User.objects.create_user(
			username='driver', password='pass1234', role='driver', phone_number='+355690000004',
		)
		DriverProfile.objects.create(user=self.driver)
		self.reviewer = User.objects.create_user(username='admin', password='pass1234', role='admin')

	def submit(self, **files):
		data = {
			'id_document_type': 'id_card',
			'id_document_number': 'I123456',
			'license_number': 'L98765',
			'vehicle_plate': 'AA 123 BB',
		}
		data.update(files)
		request = self.factory.post('/api/driver/verification/', data, format='multipart')
		force_authenticate(request, user=self.driver)
		return DriverVerificationView.as_view()(request)

	def test_id_card_needs_back_side(self):
		response = self.submit(id_front=upload(), license_file=upload())

		self.assertEqual(response.status_code, 400)
		self.assertFalse(DriverVerification.objects.exists())

	def test_submit_then_approve(self):
		response = self.submit(id_front=upload(), id_back=upload(), license_file=upload())

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['status'], 'pending')
		self.assertIsNotNone(response.data['documents']['id_back'])
		self.assertEqual(DriverProfile.objects.get(user=self.driver).vehicle_plate, 'AA 123 BB')

		verification = DriverVerification.objects.get(driver=self.driver)
		services.review_verification(verification, self.reviewer, approve=True)

		self.driver.refresh_from_db()
		self.assertTrue(self.driver.admin_approved)
		self.assertEqual(verification.reviewed_by, self.reviewer)

	def test_resubmission_resets_review(self):
		self.submit(id_front=upload(), id_back=upload(), license_file=upload())
		verification = DriverVerification.objects.get(driver=self.driver)
		services.review_verification(verification, self.reviewer, approve=False, note='Blurry photo')

		# Existing files are kept when not re-uploaded
		response = self.submit(id_front=upload('new.pdf'))

		self.assertEqual(response.status_code, 201)
		verification.refresh_from_db()
		self.assertEqual(verification.status, 'pending')
		self.assertEqual(verification.admin_note, '')
		self.assertIsNone(verification.reviewed_by)

	def test_signed_document_link(self):
		self.submit(id_front=upload(), id_back=upload(), license_file=upload())
		verification = DriverVerification.objects.get(driver=self.driver)
		token = services.sign_document(verification.id, 'license_file')

		response = driver_document(self.factory.get('/'), token=token)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(b''.join(response.streaming_content), b'%PDF-1.4 test document')
		response.close()

	def test_tampered_and_expired_links(self):
		self.submit(id_front=upload(), id_back=upload(), license_file=upload())
		verification = DriverVerification.objects.get(driver=self.driver)
		token = services.sign_document(verification.id, 'id_front')

		response = driver_document(self.factory.get('/'), token=token + 'x')
		self.assertEqual(response.status_code, 404)

		with self.settings(SIGNED_DOCUMENT_URL_TTL=-1):
			response = driver_document(self.factory.get('/'), token=token)
		self.assertEqual(response.status_code, 410)
