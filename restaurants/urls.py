from django.urls import path
from . import views

urlpatterns = [
    path('', views.RestaurantListView.as_view(), name='restaurants'),
    path('<int:restaurant_id>/', views.RestaurantDetailView.as_view(), name='restaurant_detail'),
    path('<int:restaurant_id>/menu/', views.RestaurantMenuView.as_view(), name='restaurant_menu'),
]
