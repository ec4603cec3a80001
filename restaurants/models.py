from django.conf import settings
from django.db import models


class Restaurant(models.Model):
	name = models.CharField(max_length=255)
	slogan = models.TextField(blank=True)
	address = models.TextField()
	image_url = models.TextField(blank=True)
	open_time = models.TimeField(null=True, blank=True)
	close_time = models.TimeField(null=True, blank=True)
	manager = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='managed_restaurants',
	)
	created_at = models.DateTimeField(auto_now_add=True)

	def __str__(self):
		return self.name


class MenuItem(models.Model):
	type = models.CharField(max_length=50)
	name = models.CharField(max_length=255)
	abv = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
	description = models.TextField(blank=True)
	image_url = models.TextField(blank=True)
	price = models.DecimalField(max_digits=10, decimal_places=2)
	created_at = models.DateTimeField(auto_now_add=True)

	def __str__(self):
		return self.name


class RestaurantMenuItem(models.Model):
	restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='menu_entries')
	menu_item = models.ForeignKey(MenuItem, on_delete=models.CASCADE, related_name='restaurant_entries')
	is_available = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		constraints = [
			models.UniqueConstraint(fields=['restaurant', 'menu_item'], name='unique_restaurant_menu_item'),
		]

	def __str__(self):
		return f"{self.menu_item.name} at {self.restaurant.name}"
