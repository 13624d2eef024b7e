from django.contrib import admin, messages
from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.utils.html import format_html
from import_export import resources, fields
from import_export.widgets import ForeignKeyWidget
from import_export.admin import ImportExportModelAdmin

from apps.utils.exceptions import BusinessLogicException
from .models import DriverProfile
from .services import DriverService

User = get_user_model()


class DriverProfileResource(resources.ModelResource):
    user = fields.Field(
        column_name='user_email',
        attribute='user',
        widget=ForeignKeyWidget(User, 'email')
    )

    class Meta:
        model = DriverProfile
        fields = ('id', 'user', 'name', 'phone', 'is_active', 'created_at')
        export_order = fields


@admin.register(DriverProfile)
class DriverProfileAdmin(ImportExportModelAdmin):
    resource_class = DriverProfileResource
    list_display = ('name', 'user_email', 'phone', 'status_badge', 'active_orders', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name', 'phone', 'user__email')
    raw_id_fields = ('user',)
    actions = ['activate_drivers', 'deactivate_drivers']

    def get_queryset(self, request):
        qs = super().get_queryset(request).select_related('user')
        return qs.annotate(
            _active_orders=Count('orders', filter=Q(orders__status__in=['ACCEPTED', 'PICKED_UP']))
        )

    def user_email(self, obj):
        return obj.user.email
    user_email.short_description = "Login"

    def status_badge(self, obj):
        if obj.is_active:
            return format_html('<span style="color: green; font-weight: bold;">Active</span>')
        return format_html('<span style="color: gray;">Inactive</span>')
    status_badge.short_description = "Status"

    def active_orders(self, obj):
        return obj._active_orders
    active_orders.short_description = "On Trip"
    active_orders.admin_order_field = '_active_orders'

    def _set_active(self, request, queryset, active):
        changed, refused = 0, []
        for profile in queryset:
            try:
                DriverService.set_active(profile, active)
                changed += 1
            except BusinessLogicException:
                refused.append(profile.name)

        verb = "activated" if active else "deactivated"
        self.message_user(request, f"{changed} drivers {verb}.")
        if refused:
            self.message_user(
                request,
                f"Still on a delivery, left active: {', '.join(refused)}",
                level=messages.WARNING
            )

    @admin.action(description="Activate selected drivers")
    def activate_drivers(self, request, queryset):
        self._set_active(request, queryset, True)

    @admin.action(description="Deactivate selected drivers (skips drivers on a delivery)")
    def deactivate_drivers(self, request, queryset):
        self._set_active(request, queryset, False)
