# apps/orders/urls.py
# Mounted under "store/orders" and "driver/orders" without a trailing slash,
# so every sub-path carries its own leading "/".
from django.urls import path
from .views import (
    StoreOrderPreviewAPIView,
    StoreOrderListCreateAPIView,
    StoreOrderStatusAPIView,
    StoreOrderDetailAPIView,
    DriverOrderListAPIView,
    DriverOrderProofAPIView,
    DriverOrderStatusAPIView,
)

store_urlpatterns = [
    path("", StoreOrderListCreateAPIView.as_view()),
    path("/preview", StoreOrderPreviewAPIView.as_view()),
    path("/<int:order_id>/status", StoreOrderStatusAPIView.as_view()),
    path("/<int:order_id>", StoreOrderDetailAPIView.as_view()),
]

driver_urlpatterns = [
    path("", DriverOrderListAPIView.as_view()),
    path("/<int:order_id>/proof", DriverOrderProofAPIView.as_view()),
    path("/<int:order_id>/status", DriverOrderStatusAPIView.as_view()),
]
