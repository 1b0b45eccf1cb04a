from django.db import models
from django.utils import timezone
from django.conf import settings

User = settings.AUTH_USER_MODEL


class DriverProfile(models.Model):
    """Driver-specific details and availability status"""
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('busy', 'Busy'),
        ('offline', 'Offline'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='driver_profile')

    # Vehicle details
    vehicle_model = models.CharField(max_length=100, blank=True)
    vehicle_plate = models.CharField(max_length=20, blank=True)

    # Status & location
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='offline')
    current_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'driver_profiles'

    def __str__(self):
        return f"{self.user.username} - {self.vehicle_plate or 'no plate'}"

    @property
    def has_position(self):
        return self.current_latitude is not None and self.current_longitude is not None


def verification_upload_path(instance, filename):
    return f"driver-verifications/{instance.driver_id}/{filename}"


class DriverVerification(models.Model):
    """Identity and licence documents a driver submits for admin review"""
    DOCUMENT_TYPE_CHOICES = [
        ('passport', 'Passport'),
        ('id_card', 'ID card'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    driver = models.OneToOneField(User, on_delete=models.CASCADE, related_name='driver_verification')

    id_document_type = models.CharField(max_length=10, choices=DOCUMENT_TYPE_CHOICES)
    id_document_number = models.CharField(max_length=64)
    id_front = models.FileField(upload_to=verification_upload_path)
    id_back = models.FileField(upload_to=verification_upload_path, null=True, blank=True)
    license_file = models.FileField(upload_to=verification_upload_path)
    license_number = models.CharField(max_length=64)
    license_class = models.CharField(max_length=16, blank=True)
    vehicle_plate = models.CharField(max_length=20)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    admin_note = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_verifications'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)

    submitted_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'driver_verifications'
        ordering = ['-submitted_at']

    def __str__(self):
        return f"Verification {self.driver_id} ({self.status})"

    DOCUMENT_FIELDS = ('id_front', 'id_back', 'license_file')
