from django.contrib import admin
from django.utils.html import format_html
from django.utils.timezone import localtime
from import_export import resources, fields
from import_export.widgets import ForeignKeyWidget
from import_export.admin import ExportMixin

from apps.drivers.models import DriverProfile
from apps.stores.models import Store
from .models import Order, DeliveryInstructions, ProofRecord


class OrderResource(resources.ModelResource):
    # Linking Store by name
    store = fields.Field(
        column_name='store_name',
        attribute='store',
        widget=ForeignKeyWidget(Store, 'name')
    )
    # Linking Driver by name
    driver = fields.Field(
        column_name='driver_name',
        attribute='driver',
        widget=ForeignKeyWidget(DriverProfile, 'name')
    )

    class Meta:
        model = Order
        fields = (
            'id',
            'store',
            'driver',
            'status',
            'recipient_name',
            'dropoff_address',
            'distance_km',
            'eta_minutes',
            'driver_price',
            'platform_profit',
            'store_price',
            'rush_fee',
            'rush_applied',
            'created_at',
        )
        export_order = fields


class DeliveryInstructionsInline(admin.StackedInline):
    model = DeliveryInstructions
    extra = 0
    can_delete = False
    readonly_fields = ('buzz_code', 'unit', 'note')

    def has_add_permission(self, request, obj=None):
        return False


class ProofRecordInline(admin.TabularInline):
    model = ProofRecord
    extra = 0
    can_delete = False
    fields = ('thumbnail', 'image_url', 'uploaded_by_role', 'created_at')
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def thumbnail(self, obj):
        if obj.image_url:
            return format_html('<img src="{}" width="50" height="50" style="object-fit: cover; border-radius: 4px;" />', obj.image_url)
        return "No Image"
    thumbnail.short_description = "Photo"


@admin.register(Order)
class OrderAdmin(ExportMixin, admin.ModelAdmin):
    """
    Read-mostly view. Status only moves through the API so the
    lifecycle rules cannot be bypassed from here.
    """
    resource_class = OrderResource
    list_display = (
        'id',
        'store_name',
        'driver_name',
        'status_badge',
        'recipient_name',
        'distance_km',
        'store_price_display',
        'rush_applied',
        'maps_link',
        'created_at_date'
    )
    list_filter = (
        'status',
        'rush_applied',
        'created_at',
    )
    search_fields = (
        'id',
        'recipient_name',
        'recipient_phone',
        'tag_number',
        'store__name',
        'driver__name',
    )
    list_select_related = ('store', 'driver')
    inlines = [DeliveryInstructionsInline, ProofRecordInline]
    list_per_page = 25

    fieldsets = (
        ('Order Information', {
            'fields': ('id', 'store', 'driver', 'status')
        }),
        ('Recipient', {
            'fields': ('recipient_name', 'recipient_phone', 'tag_number')
        }),
        ('Route', {
            'fields': (
                'pickup_address', 'pickup_lat', 'pickup_lng',
                'dropoff_address', 'dropoff_lat', 'dropoff_lng',
                'distance_km', 'eta_minutes', 'maps_link',
            )
        }),
        ('Schedule', {
            'fields': ('deliver_after', 'deliver_before')
        }),
        ('Pricing', {
            'fields': ('driver_price', 'platform_profit', 'profit_raw', 'store_price', 'rush_fee', 'rush_applied')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in Order._meta.fields] + ['maps_link']

    def has_add_permission(self, request):
        return False

    def store_name(self, obj):
        return obj.store.name
    store_name.short_description = "Store"
    store_name.admin_order_field = 'store__name'

    def driver_name(self, obj):
        return obj.driver.name if obj.driver else "-"
    driver_name.short_description = "Driver"
    driver_name.admin_order_field = 'driver__name'

    def status_badge(self, obj):
        colors = {
            'CREATED': '#6c757d',
            'PREPARING': '#ffc107',
            'READY_FOR_PICKUP': '#007bff',
            'ACCEPTED': '#17a2b8',
            'PICKED_UP': '#6f42c1',
            'DELIVERED': '#28a745',
        }
        color = colors.get(obj.status, '#6c757d')
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; border-radius: 4px; font-size: 0.8em;">{}</span>',
            color,
            obj.get_status_display()
        )
    status_badge.short_description = "Status"

    def store_price_display(self, obj):
        return f"${obj.store_price:.2f}"
    store_price_display.short_description = "Store Price"
    store_price_display.admin_order_field = 'store_price'

    def maps_link(self, obj):
        if obj.dropoff_lat is None or obj.dropoff_lng is None:
            return "-"
        return format_html(
            '<a href="https://www.google.com/maps/dir/?api=1&origin={},{}&destination={},{}" target="_blank">Route</a>',
            obj.pickup_lat, obj.pickup_lng, obj.dropoff_lat, obj.dropoff_lng
        )
    maps_link.short_description = "Map"

    def created_at_date(self, obj):
        if obj.created_at:
            return localtime(obj.created_at).strftime('%d/%m/%Y %H:%M')
        return "N/A"
    created_at_date.short_description = "Created"
    created_at_date.admin_order_field = 'created_at'
