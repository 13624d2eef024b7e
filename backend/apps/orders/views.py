# apps/orders/views.py
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.permissions import IsDriver, IsStore

from . import lifecycle
from .filters import StoreOrderFilter
from .guards import Principal
from .serializers import (
    CreateOrderSerializer,
    DriverOrderSerializer,
    DriverStatusSerializer,
    PreviewOrderSerializer,
    ProofUploadSerializer,
    QuoteSerializer,
    StoreOrderSerializer,
    StoreStatusSerializer,
)
from .services import OrderService, ProofService


class StoreOrderPreviewAPIView(APIView):
    """
    Store: price a delivery without creating it.
    """
    permission_classes = [IsAuthenticated, IsStore]

    def post(self, request):
        serializer = PreviewOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        quote = OrderService.quote(
            Principal.from_user(request.user, lifecycle.STORE),
            data["dropoff_address"],
            deliver_before=data.get("deliver_before"),
            deliver_after=data.get("deliver_after"),
        )
        return Response(QuoteSerializer(quote).data)


class StoreOrderListCreateAPIView(APIView):
    """
    Store: list own orders / create a new one.
    """
    permission_classes = [IsAuthenticated, IsStore]

    def get(self, request):
        orders = OrderService.orders_for_store(Principal.from_user(request.user, lifecycle.STORE))
        filterset = StoreOrderFilter(request.query_params, queryset=orders)
        if not filterset.is_valid():
            raise ValidationError(filterset.errors)
        return Response(StoreOrderSerializer(filterset.qs, many=True).data)

    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order, quote = OrderService.create_order(
            Principal.from_user(request.user, lifecycle.STORE),
            serializer.validated_data,
        )
        return Response(
            {"success": True, "id": order.id, **QuoteSerializer(quote).data},
            status=status.HTTP_200_OK
        )


class StoreOrderStatusAPIView(APIView):
    permission_classes = [IsAuthenticated, IsStore]

    def put(self, request, order_id):
        serializer = StoreStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.transition(
            Principal.from_user(request.user, lifecycle.STORE),
            order_id,
            serializer.validated_data["status"],
        )
        return Response({"success": True, "id": order.id, "status": order.status})


class StoreOrderDetailAPIView(APIView):
    permission_classes = [IsAuthenticated, IsStore]

    def delete(self, request, order_id):
        OrderService.delete_order(Principal.from_user(request.user, lifecycle.STORE), order_id)
        return Response({"success": True})


class DriverOrderListAPIView(APIView):
    """
    Driver: open job board plus own in-flight deliveries.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        orders = OrderService.orders_for_driver(Principal.from_user(request.user, lifecycle.DRIVER))
        return Response(DriverOrderSerializer(orders, many=True).data)


class DriverOrderProofAPIView(APIView):
    """
    Driver: attach a proof-of-delivery photo, either as a URL or a file.
    """
    permission_classes = [IsAuthenticated, IsDriver]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def post(self, request, order_id):
        serializer = ProofUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        proof = ProofService.add_proof(
            Principal.from_user(request.user, lifecycle.DRIVER),
            order_id,
            image_url=data.get("image_url"),
            upload=data.get("file"),
        )
        return Response({"success": True, "id": proof.id, "image_url": proof.image_url})


class DriverOrderStatusAPIView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def put(self, request, order_id):
        serializer = DriverStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.transition(
            Principal.from_user(request.user, lifecycle.DRIVER),
            order_id,
            serializer.validated_data["status"],
        )
        return Response({"success": True, "id": order.id, "status": order.status})
