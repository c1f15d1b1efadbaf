"""
Driver model: onboarding state, availability, location and credit balance.
"""
from datetime import timedelta
from decimal import Decimal
from django.db import models
from django.db.models import Q
from django.conf import settings
from django.utils import timezone


class Driver(models.Model):
    """
    Delivery driver profile.

    A driver can only be assigned orders while approved, online and
    available. credit_balance is the allowance cash-on-delivery totals are
    deducted from; it only changes through credit.ledger.
    """
    VEHICLE_TYPES = [
        ('bike', 'Motorcycle'),
        ('bicycle', 'Bicycle'),
        ('car', 'Car'),
        ('scooter', 'Scooter'),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='driver_profile',
        limit_choices_to={'user_type': 'driver'}
    )

    # Identity
    name = models.CharField(max_length=150)
    phone_number = models.CharField(max_length=17, unique=True)
    license_number = models.CharField(max_length=50, blank=True)
    vehicle_type = models.CharField(max_length=20, choices=VEHICLE_TYPES, default='bike')
    vehicle_plate = models.CharField(max_length=20, blank=True)

    # Documents
    license_image = models.ImageField(upload_to='drivers/licenses/', null=True, blank=True)
    id_card_image = models.ImageField(upload_to='drivers/id_cards/', null=True, blank=True)

    # Onboarding
    is_approved = models.BooleanField(default=False)
    rejection_reason = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    # Operational flags
    is_online = models.BooleanField(default=False)
    is_available = models.BooleanField(default=False)
    is_blocked = models.BooleanField(
        default=False,
        help_text='Blocked drivers cannot go online or receive orders'
    )

    # Credit
    credit_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )

    # Current location
    current_latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True
    )
    current_longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True
    )

    # Session tracking
    last_online = models.DateTimeField(null=True, blank=True)
    last_location_update = models.DateTimeField(null=True, blank=True)

    # Statistics
    total_deliveries = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_approved', 'is_online', 'is_available'], name='driver_assignable_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(credit_balance__gte=0),
                name='driver_credit_balance_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone_number})"

    @property
    def is_assignable(self):
        return self.is_approved and not self.is_blocked and self.is_online and self.is_available

    @property
    def approval_status(self):
        if self.is_blocked:
            return 'blocked'
        if self.is_approved:
            return 'approved'
        if self.rejection_reason:
            return 'rejected'
        return 'pending'

    def get_coordinates(self):
        if self.current_latitude is not None and self.current_longitude is not None:
            return (float(self.current_latitude), float(self.current_longitude))
        return None

    def is_stale(self, threshold_minutes):
        """True if the driver has not checked in within the threshold."""
        if self.last_online is None:
            return True
        return timezone.now() - self.last_online > timedelta(minutes=threshold_minutes)
