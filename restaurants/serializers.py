from rest_framework import serializers
from .models import Restaurant, RestaurantMenuItem


class RestaurantSerializer(serializers.ModelSerializer):
    manager_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Restaurant
        fields = ['id', 'name', 'slogan', 'address', 'image_url', 'open_time',
                 'close_time', 'manager_id', 'created_at']
        read_only_fields = ['id', 'name', 'slogan', 'address', 'image_url', 'open_time',
                            'close_time', 'created_at']


class MenuEntrySerializer(serializers.ModelSerializer):
    """A menu item as offered at one restaurant"""
    id = serializers.IntegerField(source='menu_item_id', read_only=True)
    type = serializers.CharField(source='menu_item.type', read_only=True)
    name = serializers.CharField(source='menu_item.name', read_only=True)
    abv = serializers.DecimalField(
        source='menu_item.abv', max_digits=5, decimal_places=2,
        allow_null=True, read_only=True
    )
    description = serializers.CharField(source='menu_item.description', read_only=True)
    image_url = serializers.CharField(source='menu_item.image_url', read_only=True)
    price = serializers.DecimalField(
        source='menu_item.price', max_digits=10, decimal_places=2, read_only=True
    )

    class Meta:
        model = RestaurantMenuItem
        fields = ['id', 'type', 'name', 'abv', 'description', 'image_url', 'price', 'is_available']
        read_only_fields = ['is_available']
