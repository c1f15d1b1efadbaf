"""
API URL routes for restaurants, menus and special offers.
"""
from django.urls import path
from . import api_views

app_name = 'restaurants_api'

urlpatterns = [
    path('', api_views.restaurant_list, name='restaurant_list'),
    path('<int:restaurant_id>/approve/', api_views.approve_restaurant, name='approve_restaurant'),
    path('<int:restaurant_id>/reject/', api_views.reject_restaurant, name='reject_restaurant'),
    path('<int:restaurant_id>/block/', api_views.block_restaurant, name='block_restaurant'),
    path('<int:restaurant_id>/unblock/', api_views.unblock_restaurant, name='unblock_restaurant'),

    # Menu
    path('<int:restaurant_id>/menu/', api_views.restaurant_menu, name='restaurant_menu'),
    path('<int:restaurant_id>/menu/categories/', api_views.create_menu_category, name='create_menu_category'),
    path('<int:restaurant_id>/menu/items/', api_views.create_menu_item, name='create_menu_item'),
    path('<int:restaurant_id>/menu/pending/', api_views.pending_menu_items, name='pending_menu_items'),
    path('menu/categories/<int:category_id>/', api_views.manage_menu_category, name='manage_menu_category'),
    path('menu/items/<int:item_id>/', api_views.manage_menu_item, name='manage_menu_item'),
    path('menu/items/<int:item_id>/availability/', api_views.menu_item_availability, name='menu_item_availability'),
    path('menu/items/<int:item_id>/approve/', api_views.approve_menu_item, name='approve_menu_item'),
    path('menu/items/<int:item_id>/reject/', api_views.reject_menu_item, name='reject_menu_item'),

    # Special offers
    path('offers/', api_views.live_offers, name='live_offers'),
    path('<int:restaurant_id>/offers/', api_views.create_offer, name='create_offer'),
    path('offers/<int:offer_id>/', api_views.manage_offer, name='manage_offer'),
]
