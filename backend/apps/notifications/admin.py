# apps/notifications/admin.py
from django.contrib import admin
from django.utils.timezone import localtime
from .models import Notification


class RecipientKindFilter(admin.SimpleListFilter):
    title = "recipient"
    parameter_name = "kind"

    def lookups(self, request, model_admin):
        return (("store", "Stores"), ("driver", "Drivers"))

    def queryset(self, request, queryset):
        if self.value():
            return queryset.filter(user__roles__role=self.value())
        return queryset


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """
    Read-only push history, useful when a store says it never heard back.
    """
    list_display = ('id', 'user', 'title', 'order_ref', 'sent_at')
    list_filter = (RecipientKindFilter, 'created_at')
    search_fields = ('user__email', 'title')
    list_select_related = ('user',)
    list_per_page = 50
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def order_ref(self, obj):
        order_id = (obj.data or {}).get("order_id")
        return f"#{order_id}" if order_id else "-"
    order_ref.short_description = "Order"

    def sent_at(self, obj):
        return localtime(obj.created_at).strftime('%d/%m/%Y %H:%M')
    sent_at.short_description = "Sent"
    sent_at.admin_order_field = 'created_at'
