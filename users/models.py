"""
User models for the marketplace administration system.
Extends Django's AbstractUser with the platform roles.
"""
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.core.validators import RegexValidator


class User(AbstractUser):
    """
    Custom user model shared by superadmins, restaurant staff, drivers and customers.
    """
    USER_TYPES = [
        ('superadmin', 'Superadmin'),
        ('restaurant_admin', 'Restaurant Admin'),
        ('kitchen_staff', 'Kitchen Staff'),
        ('driver', 'Driver'),
        ('customer', 'Customer'),
    ]

    user_type = models.CharField(
        max_length=20,
        choices=USER_TYPES,
        default='customer',
        help_text='Type of user account'
    )

    # Contact Information
    phone_regex = RegexValidator(
        regex=r'^\+?1?\d{9,15}$',
        message="Phone number must be entered in the format: '+999999999'. Up to 15 digits allowed."
    )
    phone_number = models.CharField(
        validators=[phone_regex],
        max_length=17,
        blank=True,
        help_text='Contact phone number'
    )

    # Restaurant admins and kitchen staff belong to one restaurant
    restaurant = models.ForeignKey(
        'restaurants.Restaurant',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='staff',
        help_text='Restaurant this staff account works for'
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_type', 'is_active'], name='user_type_active_idx'),
        ]

    def __str__(self):
        return f"{self.username} ({self.get_user_type_display()})"

    @property
    def is_superadmin(self):
        return self.user_type == 'superadmin' or self.is_superuser

    @property
    def is_restaurant_staff(self):
        return self.user_type in ('restaurant_admin', 'kitchen_staff')

    @property
    def is_driver(self):
        return self.user_type == 'driver'

    @property
    def is_customer(self):
        return self.user_type == 'customer'

    def works_for(self, restaurant_id):
        """True if this account may act for the given restaurant."""
        if self.is_superadmin:
            return True
        return self.is_restaurant_staff and self.restaurant_id == restaurant_id

    def manages_menu_of(self, restaurant_id):
        """Restaurant admins (and superadmins) approve and edit menus."""
        if self.is_superadmin:
            return True
        return self.user_type == 'restaurant_admin' and self.restaurant_id == restaurant_id
