from django.contrib import admin
from .models import PaymentMethod

@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'card_brand', 'last4', 'is_default', 'created_at']
    list_filter = ['card_brand', 'is_default']
    search_fields = ['user__username', 'card_holder_name']
    readonly_fields = ['created_at', 'updated_at']
