from rest_framework import serializers

from . import pricing
from .models import Tab, TabItem


def live_total(tab):
    """Tab total recomputed from its items (uses prefetched items when present)."""
    return pricing.tab_total(item.subtotal for item in tab.items.all())


class TabItemSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='menu_item.name', read_only=True)
    type = serializers.CharField(source='menu_item.type', read_only=True)
    price = serializers.DecimalField(
        source='menu_item.price', max_digits=10, decimal_places=2, read_only=True,
        help_text='Current menu price (the subtotal keeps the price at order time)'
    )

    class Meta:
        model = TabItem
        fields = ['id', 'menu_item', 'name', 'type', 'price', 'quantity', 'subtotal', 'served', 'created_at']
        read_only_fields = fields


class BaseTabView(serializers.ModelSerializer):
    restaurant_name = serializers.CharField(source='restaurant.name', read_only=True)
    total = serializers.SerializerMethodField(help_text='Sum of the item subtotals')

    def get_total(self, tab):
        return str(live_total(tab))


class TabSummarySerializer(BaseTabView):
    """One row of the "my tabs" list"""

    class Meta:
        model = Tab
        fields = ['id', 'user_id', 'restaurant_id', 'restaurant_name', 'payment_method_id',
                 'open_time', 'close_time', 'is_open', 'total', 'created_at']
        read_only_fields = fields


class CustomerTabView(BaseTabView):
    """A tab as its owner sees it"""
    items = TabItemSerializer(many=True, read_only=True)

    class Meta:
        model = Tab
        fields = ['id', 'user_id', 'restaurant_id', 'restaurant_name', 'payment_method_id',
                 'open_time', 'close_time', 'is_open', 'total', 'created_at', 'items']
        read_only_fields = fields


class ManagerTabView(BaseTabView):
    """A tab as a manager of its restaurant sees it"""
    customer_name = serializers.SerializerMethodField()
    items = TabItemSerializer(many=True, read_only=True)

    class Meta:
        model = Tab
        fields = ['id', 'user_id', 'customer_name', 'restaurant_id', 'restaurant_name',
                 'open_time', 'close_time', 'is_open', 'total', 'items']
        read_only_fields = fields

    def get_customer_name(self, tab):
        return tab.user.get_full_name() or tab.user.get_username()


class OpenTabSerializer(serializers.Serializer):
    restaurant_id = serializers.IntegerField(help_text="ID of the restaurant to open a tab at")


class AddItemSerializer(serializers.Serializer):
    menu_item_id = serializers.IntegerField(help_text="ID of the menu item to order")
    quantity = serializers.IntegerField(
        min_value=1, max_value=pricing.MAX_QUANTITY, default=1,
        help_text=f"Quantity to add (1 to {pricing.MAX_QUANTITY})"
    )


class SetServedSerializer(serializers.Serializer):
    served = serializers.BooleanField(help_text="New served flag for the item")


class CloseTabSerializer(serializers.Serializer):
    payment_method_id = serializers.IntegerField(help_text="One of the caller's stored payment methods")
