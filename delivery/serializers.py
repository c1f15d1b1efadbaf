"""
DRF Serializers for driver profiles.
"""
from rest_framework import serializers
from .models import Driver


class DriverSerializer(serializers.ModelSerializer):
    """Driver profile as seen by the driver and by superadmins."""
    approval_status = serializers.CharField(read_only=True)
    username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = Driver
        fields = [
            'id', 'username', 'name', 'phone_number', 'license_number',
            'vehicle_type', 'vehicle_plate', 'license_image', 'id_card_image',
            'is_approved', 'approval_status', 'rejection_reason', 'approved_at',
            'is_blocked', 'is_online', 'is_available', 'credit_balance',
            'current_latitude', 'current_longitude', 'last_online',
            'last_location_update', 'total_deliveries', 'created_at'
        ]
        read_only_fields = fields


class DriverListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the superadmin driver table."""
    approval_status = serializers.CharField(read_only=True)

    class Meta:
        model = Driver
        fields = [
            'id', 'name', 'phone_number', 'vehicle_type', 'approval_status',
            'is_blocked', 'is_online', 'is_available', 'credit_balance', 'last_online',
            'total_deliveries'
        ]


class DriverRegistrationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    phone_number = serializers.CharField(max_length=17)
    license_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    vehicle_type = serializers.ChoiceField(choices=Driver.VEHICLE_TYPES, required=False, default='bike')
    vehicle_plate = serializers.CharField(max_length=20, required=False, allow_blank=True)
    license_image = serializers.ImageField(required=False, allow_null=True)
    id_card_image = serializers.ImageField(required=False, allow_null=True)


class DriverStatusSerializer(serializers.Serializer):
    is_online = serializers.BooleanField()
    is_available = serializers.BooleanField(required=False, allow_null=True, default=None)


class DriverLocationSerializer(serializers.Serializer):
    latitude = serializers.FloatField()
    longitude = serializers.FloatField()
