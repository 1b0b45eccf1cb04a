from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator


class Ride(models.Model):
    """A client's ride request and its whole lifecycle"""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('driver_assigned', 'Driver assigned'),
        ('driver_arrived', 'Driver arrived'),
        ('in_progress', 'In progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    ACTIVE_STATUSES = ('pending', 'driver_assigned', 'driver_arrived', 'in_progress')
    # Statuses where a driver is attached and the ride is under way
    ONGOING_STATUSES = ('driver_assigned', 'driver_arrived', 'in_progress')

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
    ]

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='client_rides'
    )
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driver_rides'
    )

    # Pickup / drop-off
    pickup_lat = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_lng = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_address = models.TextField(blank=True)
    pickup_city = models.CharField(max_length=128, blank=True)
    drop_lat = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    drop_lng = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    drop_address = models.TextField(blank=True)

    distance_km = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    estimated_time_minutes = models.PositiveIntegerField(null=True, blank=True)
    passengers = models.PositiveSmallIntegerField(
        default=1, validators=[MinValueValidator(1), MaxValueValidator(20)]
    )

    # Money
    base_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    final_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default='USD')
    client_offer_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='cash')

    # Live driver position during the ride
    driver_lat = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    driver_lng = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    driver_speed = models.FloatField(null=True, blank=True)
    driver_heading = models.FloatField(null=True, blank=True)
    driver_location_updated_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    arrived_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.TextField(blank=True)

    class Meta:
        db_table = 'rides'
        ordering = ['-created_at']

    def __str__(self):
        return f"Ride #{self.id} - {self.client} - {self.status}"

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def is_participant(self, user):
        return user.id in (self.client_id, self.driver_id)


class RideOffer(models.Model):
    """A driver's price offer on a pending ride, optionally countered by the client."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('expired', 'Expired'),
    ]

    ride = models.ForeignKey(Ride, on_delete=models.CASCADE, related_name='offers')
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_offers',
        limit_choices_to={'role': 'driver'}
    )

    price_offer = models.DecimalField(max_digits=10, decimal_places=2)
    client_counter_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Driver position when the offer was made
    driver_lat = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    driver_lng = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    message = models.CharField(max_length=500, blank=True)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'ride_offers'
        ordering = ['-updated_at']
        constraints = [
            models.UniqueConstraint(
                fields=['ride', 'driver'],
                name='unique_ride_driver'
            )
        ]

    def __str__(self):
        return f"Offer #{self.id} - Ride {self.ride_id} -> Driver {self.driver_id}"


class RideMessage(models.Model):
    """Chat message between the client and the driver of a ride"""
    MAX_LENGTH = 2000

    ride = models.ForeignKey(Ride, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='ride_messages')
    sender_role = models.CharField(max_length=10)
    message = models.TextField(max_length=MAX_LENGTH)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ride_messages'
        ordering = ['created_at']

    def __str__(self):
        return f"Message #{self.id} on ride {self.ride_id}"
