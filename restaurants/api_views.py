"""
API views for restaurant onboarding, menus and special offers.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework import status

from users.decorators import superadmin_required, restaurant_staff_or_admin_required
from restaurants.models import Restaurant
from restaurants.serializers import (
    RestaurantSerializer, RestaurantCreateSerializer,
    SpecialOfferSerializer, SpecialOfferCreateSerializer,
    MenuCategorySerializer, MenuCategoryInputSerializer,
    MenuItemSerializer, MenuItemInputSerializer,
)
from restaurants import menu, services


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def restaurant_list(request):
    """
    GET: restaurants visible to the caller. Superadmins see every
    restaurant (optionally filtered by ?status=pending|approved|rejected),
    everyone else only restaurants accepting orders.
    POST: superadmin onboarding of a new restaurant.
    """
    if request.method == 'POST':
        if not request.user.is_superadmin:
            return Response(
                {'error': 'Only superadmins can create restaurants'},
                status=status.HTTP_403_FORBIDDEN
            )
        serializer = RestaurantCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        restaurant = services.create_restaurant(request.user, **serializer.validated_data)
        return Response(RestaurantSerializer(restaurant).data, status=status.HTTP_201_CREATED)

    restaurants = Restaurant.objects.all()
    if request.user.is_superadmin:
        status_filter = request.query_params.get('status')
        if status_filter == 'pending':
            restaurants = restaurants.filter(is_approved=False, rejection_reason='')
        elif status_filter == 'approved':
            restaurants = restaurants.filter(is_approved=True)
        elif status_filter == 'rejected':
            restaurants = restaurants.filter(is_approved=False).exclude(rejection_reason='')
    else:
        restaurants = restaurants.filter(is_active=True, is_approved=True)

    return Response({'restaurants': RestaurantSerializer(restaurants, many=True).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def approve_restaurant(request, restaurant_id):
    restaurant = services.approve_restaurant(restaurant_id, admin=request.user)
    return Response({
        'message': f'Restaurant {restaurant.name} approved',
        'restaurant': RestaurantSerializer(restaurant).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def reject_restaurant(request, restaurant_id):
    restaurant = services.reject_restaurant(
        restaurant_id, admin=request.user, reason=request.data.get('reason', '')
    )
    return Response({
        'message': f'Restaurant {restaurant.name} rejected',
        'restaurant': RestaurantSerializer(restaurant).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def block_restaurant(request, restaurant_id):
    restaurant = services.block_restaurant(restaurant_id, admin=request.user)
    return Response({
        'message': f'Restaurant {restaurant.name} blocked',
        'restaurant': RestaurantSerializer(restaurant).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@superadmin_required
def unblock_restaurant(request, restaurant_id):
    restaurant = services.unblock_restaurant(restaurant_id, admin=request.user)
    return Response({
        'message': f'Restaurant {restaurant.name} unblocked',
        'restaurant': RestaurantSerializer(restaurant).data
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def live_offers(request):
    """Special offers for the customer slider."""
    offers = services.list_live_offers(request.query_params.get('restaurant'))
    return Response({'offers': SpecialOfferSerializer(offers, many=True).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def create_offer(request, restaurant_id):
    serializer = SpecialOfferCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    offer = services.create_special_offer(request.user, restaurant_id, **serializer.validated_data)
    return Response(SpecialOfferSerializer(offer).data, status=status.HTTP_201_CREATED)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def manage_offer(request, offer_id):
    """POST toggles {'is_live': bool}; DELETE removes the offer."""
    if request.method == 'DELETE':
        services.delete_special_offer(request.user, offer_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    if 'is_live' not in request.data:
        return Response({'error': 'is_live is required'}, status=status.HTTP_400_BAD_REQUEST)

    is_live = str(request.data.get('is_live')).lower() in ('true', '1', 'yes', 'on')
    offer = services.set_offer_live(request.user, offer_id, is_live)
    return Response(SpecialOfferSerializer(offer).data)


# Menu

@api_view(['GET'])
@permission_classes([AllowAny])
def restaurant_menu(request, restaurant_id):
    """
    Menu grouped by category. Staff of the restaurant also see pending,
    rejected and sold-out items.
    """
    restaurant, categories = menu.get_menu(restaurant_id, actor=request.user)
    return Response({
        'restaurant': RestaurantSerializer(restaurant).data,
        'categories': MenuCategorySerializer(categories, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def create_menu_category(request, restaurant_id):
    serializer = MenuCategoryInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    category = menu.create_category(request.user, restaurant_id, **serializer.validated_data)
    category.listed_items = []
    return Response(MenuCategorySerializer(category).data, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def manage_menu_category(request, category_id):
    if request.method == 'DELETE':
        menu.delete_category(request.user, category_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = MenuCategoryInputSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    category = menu.update_category(request.user, category_id, **serializer.validated_data)
    category.listed_items = list(category.items.all())
    return Response(MenuCategorySerializer(category).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def create_menu_item(request, restaurant_id):
    serializer = MenuItemInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    item = menu.create_menu_item(request.user, restaurant_id, **serializer.validated_data)
    return Response(MenuItemSerializer(item).data, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def manage_menu_item(request, item_id):
    """PATCH edits the item (kitchen edits go back for approval); DELETE removes it."""
    if request.method == 'DELETE':
        menu.delete_menu_item(request.user, item_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = MenuItemInputSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    item = menu.update_menu_item(request.user, item_id, **serializer.validated_data)
    return Response(MenuItemSerializer(item).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def menu_item_availability(request, item_id):
    if 'is_available' not in request.data:
        return Response({'error': 'is_available is required'}, status=status.HTTP_400_BAD_REQUEST)

    is_available = str(request.data.get('is_available')).lower() in ('true', '1', 'yes', 'on')
    item = menu.set_item_availability(request.user, item_id, is_available)
    return Response(MenuItemSerializer(item).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def pending_menu_items(request, restaurant_id):
    items = menu.list_pending_items(request.user, restaurant_id)
    return Response({'items': MenuItemSerializer(items, many=True).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def approve_menu_item(request, item_id):
    item = menu.approve_menu_item(request.user, item_id)
    return Response({
        'message': f'{item.name} is now on the menu',
        'item': MenuItemSerializer(item).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@restaurant_staff_or_admin_required
def reject_menu_item(request, item_id):
    item = menu.reject_menu_item(request.user, item_id, request.data.get('reason', ''))
    return Response({
        'message': f'{item.name} rejected',
        'item': MenuItemSerializer(item).data
    })
