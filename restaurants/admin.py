"""
Django Admin configuration for Restaurants app.
"""
from django.contrib import admin
from django.utils.html import format_html
from .models import MenuCategory, MenuItem, Restaurant, SpecialOffer


class SpecialOfferInline(admin.TabularInline):
    model = SpecialOffer
    extra = 0
    fields = ['title', 'original_price', 'discounted_price', 'discount_percentage', 'is_live']
    readonly_fields = ['discount_percentage']


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    """Admin for Restaurant model."""

    list_display = [
        'name', 'phone_number', 'approval_badge', 'is_active', 'created_at'
    ]
    list_filter = ['is_active', 'is_approved', 'created_at']
    search_fields = ['name', 'email', 'phone_number', 'address']
    readonly_fields = ['approved_at', 'created_at', 'updated_at']
    inlines = [SpecialOfferInline]

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'description', 'image')
        }),
        ('Contact & Location', {
            'fields': ('phone_number', 'email', 'address', 'latitude', 'longitude')
        }),
        ('Approval', {
            'fields': ('is_active', 'is_approved', 'rejection_reason', 'approved_at')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def approval_badge(self, obj):
        if obj.is_approved:
            return format_html('<span style="color: green;">{}</span>', '✓ Approved')
        if obj.rejection_reason:
            return format_html('<span style="color: red;">{}</span>', '✗ Rejected')
        return format_html('<span style="color: orange;">{}</span>', '⏳ Pending')
    approval_badge.short_description = 'Approval'

    actions = ['activate_restaurants', 'deactivate_restaurants']

    def activate_restaurants(self, request, queryset):
        """Activate selected approved restaurants."""
        updated = queryset.filter(is_approved=True).update(is_active=True)
        self.message_user(request, f'{updated} restaurants activated.')
    activate_restaurants.short_description = 'Activate restaurants'

    def deactivate_restaurants(self, request, queryset):
        """Deactivate selected restaurants."""
        updated = queryset.update(is_active=False)
        self.message_user(request, f'{updated} restaurants deactivated.')
    deactivate_restaurants.short_description = 'Deactivate restaurants'


@admin.register(SpecialOffer)
class SpecialOfferAdmin(admin.ModelAdmin):
    list_display = [
        'title', 'restaurant', 'original_price', 'discounted_price',
        'discount_percentage', 'is_live', 'created_at'
    ]
    list_filter = ['is_live', 'created_at']
    search_fields = ['title', 'restaurant__name']
    readonly_fields = ['discount_percentage', 'created_at', 'updated_at']


class MenuItemInline(admin.TabularInline):
    model = MenuItem
    extra = 0
    fields = ['name', 'price', 'is_available', 'status']


@admin.register(MenuCategory)
class MenuCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'restaurant', 'sort_order', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'restaurant__name']
    inlines = [MenuItemInline]


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = [
        'name', 'restaurant', 'category', 'price', 'status_badge', 'is_available', 'updated_at'
    ]
    list_filter = ['status', 'is_available', 'is_vegetarian', 'is_vegan']
    search_fields = ['name', 'restaurant__name', 'category__name']
    readonly_fields = ['submitted_by', 'reviewed_by', 'reviewed_at', 'created_at', 'updated_at']

    def status_badge(self, obj):
        colors = {'active': 'green', 'pending_approval': 'orange', 'rejected': 'red'}
        return format_html(
            '<span style="color: {};">{}</span>',
            colors.get(obj.status, 'black'),
            obj.get_status_display(),
        )
    status_badge.short_description = 'Status'
