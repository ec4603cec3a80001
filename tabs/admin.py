from django.contrib import admin
from .models import Tab, TabItem


class TabItemInline(admin.TabularInline):
    model = TabItem
    extra = 0
    readonly_fields = ['menu_item', 'quantity', 'subtotal', 'created_at']


@admin.register(Tab)
class TabAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'restaurant', 'is_open', 'open_time', 'close_time', 'total']
    list_filter = ['is_open', 'restaurant', 'open_time']
    search_fields = ['user__username', 'restaurant__name']
    readonly_fields = ['open_time', 'close_time', 'total', 'payment_method']
    inlines = [TabItemInline]


@admin.register(TabItem)
class TabItemAdmin(admin.ModelAdmin):
    list_display = ['tab', 'menu_item', 'quantity', 'subtotal', 'served']
    list_filter = ['served', 'tab__is_open', 'menu_item']
    search_fields = ['tab__user__username', 'menu_item__name']
