"""
DRF Serializers for Restaurant models.
"""
from rest_framework import serializers
from .models import MenuCategory, MenuItem, Restaurant, SpecialOffer


class RestaurantSerializer(serializers.ModelSerializer):
    """Serializer for restaurant listing and detail."""
    is_accepting_orders = serializers.BooleanField(read_only=True)

    class Meta:
        model = Restaurant
        fields = [
            'id', 'name', 'description', 'image', 'phone_number', 'email',
            'address', 'latitude', 'longitude', 'is_active', 'is_approved',
            'is_accepting_orders', 'rejection_reason', 'approved_at',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class RestaurantCreateSerializer(serializers.Serializer):
    """Input for superadmin restaurant onboarding."""
    name = serializers.CharField(max_length=200)
    address = serializers.CharField(max_length=255)
    phone_number = serializers.CharField(max_length=17)
    email = serializers.EmailField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, allow_null=True)
    image = serializers.ImageField(required=False, allow_null=True)


class SpecialOfferSerializer(serializers.ModelSerializer):
    restaurant_name = serializers.CharField(source='restaurant.name', read_only=True)

    class Meta:
        model = SpecialOffer
        fields = [
            'id', 'restaurant', 'restaurant_name', 'title', 'image',
            'original_price', 'discounted_price', 'discount_percentage',
            'is_live', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class SpecialOfferCreateSerializer(serializers.Serializer):
    # Prices are validated by the service so the API and admin share one rule
    title = serializers.CharField(max_length=200)
    original_price = serializers.CharField()
    discounted_price = serializers.CharField()
    image = serializers.ImageField(required=False, allow_null=True)
    is_live = serializers.BooleanField(required=False, default=False)


class MenuItemSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)
    submitted_by = serializers.CharField(source='submitted_by.username', read_only=True, default=None)

    class Meta:
        model = MenuItem
        fields = [
            'id', 'restaurant', 'category', 'category_name', 'name', 'description',
            'image', 'price', 'preparation_time', 'is_vegetarian', 'is_vegan',
            'spice_level', 'is_available', 'status', 'rejection_reason',
            'submitted_by', 'reviewed_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class MenuCategorySerializer(serializers.ModelSerializer):
    items = MenuItemSerializer(source='listed_items', many=True, read_only=True)

    class Meta:
        model = MenuCategory
        fields = ['id', 'restaurant', 'name', 'description', 'is_active', 'sort_order', 'items']
        read_only_fields = fields


class MenuCategoryInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    sort_order = serializers.IntegerField(required=False, default=0, min_value=0)
    is_active = serializers.BooleanField(required=False, default=True)


class MenuItemInputSerializer(serializers.Serializer):
    # Price is validated by the service, like special offer prices
    category_id = serializers.IntegerField()
    name = serializers.CharField(max_length=200)
    price = serializers.CharField()
    description = serializers.CharField(required=False, allow_blank=True)
    image = serializers.ImageField(required=False, allow_null=True)
    preparation_time = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    is_vegetarian = serializers.BooleanField(required=False, default=False)
    is_vegan = serializers.BooleanField(required=False, default=False)
    spice_level = serializers.IntegerField(required=False, default=0, min_value=0, max_value=5)
    is_available = serializers.BooleanField(required=False, default=True)
