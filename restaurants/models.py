"""
Restaurant, menu and promotion models for the marketplace.
"""
from decimal import Decimal, ROUND_HALF_UP
from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone


class Restaurant(models.Model):
    """
    Restaurant onboarded by a superadmin.
    Only active, approved restaurants accept orders and are listed to customers.
    """
    # Basic Information
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    image = models.ImageField(
        upload_to='restaurants/images/',
        null=True,
        blank=True
    )

    # Contact & Location
    phone_number = models.CharField(max_length=17)
    email = models.EmailField(blank=True)
    address = models.CharField(max_length=255)
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True
    )

    # Approval gate
    is_active = models.BooleanField(default=True)
    is_approved = models.BooleanField(
        default=False,
        help_text='Superadmin approval status'
    )
    rejection_reason = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active', 'is_approved'], name='restaurant_listing_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def is_accepting_orders(self):
        return self.is_active and self.is_approved

    def get_coordinates(self):
        """Returns tuple of (latitude, longitude) if available."""
        if self.latitude is not None and self.longitude is not None:
            return (float(self.latitude), float(self.longitude))
        return None


class SpecialOffer(models.Model):
    """
    Promotional offer shown on the customer app slider while live.
    """
    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.CASCADE,
        related_name='special_offers'
    )

    title = models.CharField(max_length=200)
    image = models.ImageField(
        upload_to='offers/',
        null=True,
        blank=True
    )
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    discounted_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    discount_percentage = models.PositiveSmallIntegerField(default=0)
    is_live = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['restaurant', 'is_live'], name='offer_live_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.restaurant.name})"

    def save(self, *args, **kwargs):
        self.discount_percentage = self.calculate_discount_percentage(
            self.original_price, self.discounted_price
        )
        super().save(*args, **kwargs)

    @staticmethod
    def calculate_discount_percentage(original_price, discounted_price):
        """Whole-number percentage saved against the original price."""
        original = Decimal(original_price)
        if original <= 0:
            return 0
        saved = (original - Decimal(discounted_price)) / original * 100
        return int(saved.quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    def mark_live(self, is_live):
        self.is_live = is_live
        self.updated_at = timezone.now()
        self.save(update_fields=['is_live', 'discount_percentage', 'updated_at'])


class MenuCategory(models.Model):
    """
    Section of a restaurant's menu (e.g., Breakfast, Fasting, Drinks).
    """
    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.CASCADE,
        related_name='menu_categories'
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(
        default=0,
        help_text='Display order (lower numbers first)'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'Menu categories'
        ordering = ['sort_order', 'name']
        indexes = [
            models.Index(fields=['restaurant', 'sort_order'], name='menu_category_sort_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.restaurant.name})"


class MenuItem(models.Model):
    """
    Dish offered by a restaurant.

    Items submitted by kitchen staff wait for the restaurant admin's
    approval; only active, available items in an active category can be
    ordered.
    """
    STATUS_CHOICES = [
        ('pending_approval', 'Pending Approval'),
        ('active', 'Active'),
        ('rejected', 'Rejected'),
    ]

    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.CASCADE,
        related_name='menu_items'
    )
    category = models.ForeignKey(
        MenuCategory,
        on_delete=models.CASCADE,
        related_name='items'
    )

    # Basic Information
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    image = models.ImageField(
        upload_to='menu_items/',
        null=True,
        blank=True
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )

    # Details
    preparation_time = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text='Preparation time in minutes'
    )
    is_vegetarian = models.BooleanField(default=False)
    is_vegan = models.BooleanField(default=False)
    spice_level = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(5)]
    )

    # Availability and approval
    is_available = models.BooleanField(default=True)
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending_approval'
    )
    rejection_reason = models.TextField(blank=True)
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='submitted_menu_items'
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_menu_items'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['category__sort_order', 'name']
        indexes = [
            models.Index(fields=['restaurant', 'status', 'is_available'], name='menu_item_listing_idx'),
        ]

    def __str__(self):
        return f"{self.name} - {self.restaurant.name}"

    @property
    def is_orderable(self):
        return self.status == 'active' and self.is_available and self.category.is_active
