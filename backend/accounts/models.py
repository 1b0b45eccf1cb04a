from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with marketplace role"""
    ROLE_OWNER = 'owner'
    ROLE_ADMIN = 'admin'
    ROLE_DRIVER = 'driver'
    ROLE_CLIENT = 'client'
    ROLE_AFFILIATE = 'affiliate'

    ROLE_CHOICES = [
        (ROLE_OWNER, 'Owner'),
        (ROLE_ADMIN, 'Admin'),
        (ROLE_DRIVER, 'Driver'),
        (ROLE_CLIENT, 'Client'),
        (ROLE_AFFILIATE, 'Affiliate'),
    ]

    # Roles allowed through public registration
    SELF_REGISTER_ROLES = (ROLE_CLIENT, ROLE_DRIVER, ROLE_AFFILIATE)
    # Roles that must keep a phone number on file
    PHONE_REQUIRED_ROLES = (ROLE_CLIENT, ROLE_DRIVER)

    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_CLIENT)
    full_name = models.CharField(max_length=150, blank=True)
    phone_number = models.CharField(max_length=32, blank=True)
    country = models.CharField(max_length=64, blank=True)
    city = models.CharField(max_length=128, blank=True)
    avatar = models.ImageField(upload_to='avatars/', null=True, blank=True)
    completed_rides = models.IntegerField(default=0)

    # Driver gating flags, flipped from the back office
    admin_approved = models.BooleanField(default=False)
    admin_blocked = models.BooleanField(default=False)

    referred_by_code = models.CharField(max_length=32, blank=True, db_index=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def display_name(self):
        return self.full_name or self.username

    @property
    def is_staff_role(self):
        return self.role in (self.ROLE_ADMIN, self.ROLE_OWNER)
