from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample, inline_serializer
from drf_spectacular.types import OpenApiTypes
from rest_framework import serializers

from .policy import ViewScope, identity_for
from .serializers import (
    AddItemSerializer, CloseTabSerializer, CustomerTabView, ManagerTabView,
    OpenTabSerializer, SetServedSerializer, TabItemSerializer, TabSummarySerializer,
)
from .services import get_tab_service


TAB_ID_PARAMETER = OpenApiParameter(
    name='tab_id',
    type=OpenApiTypes.INT,
    location=OpenApiParameter.PATH,
    description='Tab ID'
)


def project(tab, scope):
    if scope == ViewScope.MANAGER:
        return ManagerTabView(tab).data
    return CustomerTabView(tab).data


class TabListView(APIView):
    @extend_schema(
        summary="List my tabs",
        description="All tabs of the caller, newest first, open and closed",
        responses={
            200: inline_serializer('MyTabs', {'tabs': TabSummarySerializer(many=True)}),
        }
    )
    def get(self, request):
        service = get_tab_service()
        tabs = service.list_my_tabs(identity_for(request.user))
        return Response({'tabs': TabSummarySerializer(tabs, many=True).data})

    @extend_schema(
        summary="Open a tab",
        description="Open a new tab at a restaurant. Only one open tab per restaurant is allowed.",
        request=OpenTabSerializer,
        responses={
            201: CustomerTabView,
        },
        examples=[
            OpenApiExample(
                'Open Tab Example',
                summary='Open a tab at restaurant 1',
                value={'restaurant_id': 1}
            )
        ]
    )
    def post(self, request):
        serializer = OpenTabSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = get_tab_service()
        tab = service.open_tab(identity_for(request.user), serializer.validated_data['restaurant_id'])
        tab, _ = service.store.get_with_items(tab.id)
        return Response(CustomerTabView(tab).data, status=status.HTTP_201_CREATED)


class TabDetailView(APIView):
    @extend_schema(
        summary="Get tab details",
        description="A tab with its items. Owners get the customer view, restaurant managers the manager view.",
        parameters=[TAB_ID_PARAMETER],
        responses={
            200: CustomerTabView,
        }
    )
    def get(self, request, tab_id):
        tab, scope = get_tab_service().get_tab(identity_for(request.user), tab_id)
        return Response(project(tab, scope))


class TabItemListView(APIView):
    @extend_schema(
        summary="Add menu item to tab",
        description=(
            "Order a menu item on an open tab. Ordering an item already on the tab "
            "increases its quantity instead of adding a second line."
        ),
        parameters=[TAB_ID_PARAMETER],
        request=AddItemSerializer,
        responses={
            201: inline_serializer('AddedItem', {'item': TabItemSerializer(), 'tab': CustomerTabView()}),
        },
        examples=[
            OpenApiExample(
                'Add Item Example',
                summary='Add 2 pints to the tab',
                description='Add 2 units of menu item 1 to the tab',
                value={'menu_item_id': 1, 'quantity': 2}
            )
        ]
    )
    def post(self, request, tab_id):
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = get_tab_service()
        item = service.add_item(
            identity_for(request.user),
            tab_id,
            serializer.validated_data['menu_item_id'],
            serializer.validated_data['quantity'],
        )
        tab, _ = service.store.get_with_items(tab_id)
        return Response({
            'item': TabItemSerializer(item).data,
            'tab': CustomerTabView(tab).data,
        }, status=status.HTTP_201_CREATED)


class TabItemServedView(APIView):
    @extend_schema(
        summary="Mark item served",
        description="Set the served flag of a tab item. Restaurant managers only.",
        parameters=[
            TAB_ID_PARAMETER,
            OpenApiParameter(
                name='item_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Tab item ID'
            )
        ],
        request=SetServedSerializer,
        responses={
            200: TabItemSerializer,
        },
        examples=[
            OpenApiExample('Serve Example', value={'served': True})
        ]
    )
    def patch(self, request, tab_id, item_id):
        serializer = SetServedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = get_tab_service().set_served(
            identity_for(request.user), tab_id, item_id, serializer.validated_data['served']
        )
        return Response(TabItemSerializer(item).data)


class CloseTabView(APIView):
    @extend_schema(
        summary="Close a tab",
        description="Close an open tab and record the payment method it is settled with. Cards are not charged.",
        parameters=[TAB_ID_PARAMETER],
        request=CloseTabSerializer,
        responses={
            200: CustomerTabView,
        },
        examples=[
            OpenApiExample('Close Tab Example', value={'payment_method_id': 1})
        ]
    )
    def post(self, request, tab_id):
        serializer = CloseTabSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = get_tab_service()
        service.close_tab(identity_for(request.user), tab_id, serializer.validated_data['payment_method_id'])
        tab, _ = service.store.get_with_items(tab_id)
        return Response(CustomerTabView(tab).data)


class ManagerTabsView(APIView):
    @extend_schema(
        summary="Open tabs at my restaurants",
        description="Open tabs grouped by each restaurant the caller manages, oldest tab first",
        responses={
            200: inline_serializer('ManagerTabs', {
                'restaurants': inline_serializer('RestaurantTabs', {
                    'restaurant_id': serializers.IntegerField(),
                    'restaurant_name': serializers.CharField(),
                    'tabs': ManagerTabView(many=True),
                }, many=True),
            }),
        }
    )
    def get(self, request):
        groups = get_tab_service().list_manager_tabs(identity_for(request.user))
        return Response({
            'restaurants': [
                {
                    'restaurant_id': group['restaurant_id'],
                    'restaurant_name': group['restaurant_name'],
                    'tabs': ManagerTabView(group['tabs'], many=True).data,
                }
                for group in groups
            ]
        })


class RestaurantTabsView(APIView):
    @extend_schema(
        summary="Open tabs at a restaurant",
        description="Open tabs at one restaurant the caller manages, oldest first",
        parameters=[
            OpenApiParameter(
                name='restaurant_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Restaurant ID'
            )
        ],
        responses={
            200: inline_serializer('RestaurantOpenTabs', {'tabs': ManagerTabView(many=True)}),
        }
    )
    def get(self, request, restaurant_id):
        tabs = get_tab_service().list_restaurant_tabs(identity_for(request.user), restaurant_id)
        return Response({'tabs': ManagerTabView(tabs, many=True).data})


class ManagerStatusView(APIView):
    @extend_schema(
        summary="Manager status",
        description="Whether the caller manages at least one restaurant",
        responses={
            200: inline_serializer('ManagerStatus', {'isManager': serializers.BooleanField()}),
        }
    )
    def get(self, request):
        return Response({'isManager': get_tab_service().is_manager(identity_for(request.user))})
