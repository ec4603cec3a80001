from django.contrib import admin
from .models import MenuItem, Restaurant, RestaurantMenuItem


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'address', 'manager', 'open_time', 'close_time']
    search_fields = ['name', 'address']
    list_filter = ['manager']

@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'type', 'price']
    search_fields = ['name']
    list_filter = ['type']

@admin.register(RestaurantMenuItem)
class RestaurantMenuItemAdmin(admin.ModelAdmin):
    list_display = ['restaurant', 'menu_item', 'is_available']
    list_filter = ['is_available', 'restaurant']
    search_fields = ['restaurant__name', 'menu_item__name']
