"""
Django Admin configuration for Users app
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model."""

    list_display = [
        'username', 'email', 'user_type', 'phone_number',
        'restaurant', 'is_active', 'created_at'
    ]
    list_filter = ['user_type', 'is_active', 'created_at']
    search_fields = ['username', 'email', 'phone_number', 'first_name', 'last_name']
    ordering = ['-created_at']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Role', {
            'fields': ('user_type', 'restaurant')
        }),
        ('Contact Information', {
            'fields': ('phone_number',)
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Additional Info', {
            'fields': ('user_type', 'email', 'phone_number', 'restaurant')
        }),
    )

    readonly_fields = ['created_at', 'updated_at']

    actions = ['make_kitchen_staff', 'deactivate_accounts']

    def make_kitchen_staff(self, request, queryset):
        """Turn selected restaurant accounts into kitchen staff."""
        updated = queryset.filter(restaurant__isnull=False).update(user_type='kitchen_staff')
        self.message_user(request, f'{updated} accounts set to kitchen staff.')
    make_kitchen_staff.short_description = 'Set selected restaurant accounts to kitchen staff'

    def deactivate_accounts(self, request, queryset):
        """Deactivate user accounts."""
        updated = queryset.update(is_active=False)
        self.message_user(request, f'{updated} accounts deactivated.')
    deactivate_accounts.short_description = 'Deactivate selected accounts'
