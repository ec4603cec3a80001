from django.shortcuts import get_object_or_404
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter, inline_serializer
from drf_spectacular.types import OpenApiTypes

from . import catalog
from .models import Restaurant
from .serializers import MenuEntrySerializer, RestaurantSerializer


RESTAURANT_ID_PARAMETER = OpenApiParameter(
    name='restaurant_id',
    type=OpenApiTypes.INT,
    location=OpenApiParameter.PATH,
    description='Restaurant ID'
)


class RestaurantListView(APIView):
    @extend_schema(
        summary="List restaurants",
        description="Every restaurant, ordered by name",
        responses={
            200: inline_serializer('RestaurantList', {'restaurants': RestaurantSerializer(many=True)}),
        }
    )
    def get(self, request):
        restaurants = Restaurant.objects.order_by('name', 'id')
        return Response({'restaurants': RestaurantSerializer(restaurants, many=True).data})


class RestaurantDetailView(APIView):
    @extend_schema(
        summary="Get restaurant",
        description="A single restaurant",
        parameters=[RESTAURANT_ID_PARAMETER],
        responses={
            200: inline_serializer('RestaurantDetail', {'restaurant': RestaurantSerializer()}),
        }
    )
    def get(self, request, restaurant_id):
        restaurant = get_object_or_404(Restaurant, id=restaurant_id)
        return Response({'restaurant': RestaurantSerializer(restaurant).data})


class RestaurantMenuView(APIView):
    @extend_schema(
        summary="Get restaurant menu",
        description="Menu items offered at a restaurant, ordered by type then name. "
                    "Unavailable items are listed with is_available false.",
        parameters=[RESTAURANT_ID_PARAMETER],
        responses={
            200: inline_serializer('RestaurantMenu', {'menu_items': MenuEntrySerializer(many=True)}),
        }
    )
    def get(self, request, restaurant_id):
        restaurant = get_object_or_404(Restaurant, id=restaurant_id)
        entries = catalog.menu_for(restaurant.id)
        return Response({'menu_items': MenuEntrySerializer(entries, many=True).data})
