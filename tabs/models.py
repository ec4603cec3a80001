from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


class Tab(models.Model):
	user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='tabs')
	restaurant = models.ForeignKey('restaurants.Restaurant', on_delete=models.CASCADE, related_name='tabs')
	payment_method = models.ForeignKey(
		'payment.PaymentMethod',
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='tabs',
	)
	open_time = models.DateTimeField(default=timezone.now)
	close_time = models.DateTimeField(null=True, blank=True)
	is_open = models.BooleanField(default=True)
	# Cached sum of item subtotals, rewritten on every item write and on close
	total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
	created_at = models.DateTimeField(default=timezone.now)

	class Meta:
		constraints = [
			models.UniqueConstraint(
				fields=['user', 'restaurant'],
				condition=Q(is_open=True),
				name='one_open_tab_per_user_restaurant',
			),
		]
		indexes = [
			models.Index(fields=['restaurant', 'is_open'], name='tab_restaurant_open_idx'),
		]

	def __str__(self):
		return f"Tab {self.id} (user {self.user_id} at restaurant {self.restaurant_id})"


class TabItem(models.Model):
	tab = models.ForeignKey(Tab, on_delete=models.CASCADE, related_name='items')
	menu_item = models.ForeignKey('restaurants.MenuItem', on_delete=models.CASCADE, related_name='tab_items')
	quantity = models.PositiveIntegerField(default=1)
	# quantity x menu price as observed when the line was last ordered
	subtotal = models.DecimalField(max_digits=10, decimal_places=2)
	served = models.BooleanField(default=False)
	created_at = models.DateTimeField(default=timezone.now)

	class Meta:
		constraints = [
			models.UniqueConstraint(fields=['tab', 'menu_item'], name='one_line_per_menu_item'),
		]

	def __str__(self):
		return f"{self.quantity} x {self.menu_item.name} for Tab {self.tab_id}"
