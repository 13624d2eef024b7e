from django.contrib import admin
from django.utils.html import format_html
from .models import Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ('name', 'user_email', 'phone', 'address', 'geocoded_badge', 'created_at')
    search_fields = ('name', 'user__email', 'phone', 'address')
    list_select_related = ('user',)
    raw_id_fields = ('user',)
    list_per_page = 25

    def user_email(self, obj):
        return obj.user.email
    user_email.short_description = "Login"
    user_email.admin_order_field = 'user__email'

    def geocoded_badge(self, obj):
        if obj.has_coordinates:
            return format_html('<span style="color: green;">✓ {}, {}</span>', obj.lat, obj.lng)
        return format_html('<span style="color: orange;">Pending</span>')
    geocoded_badge.short_description = "Coordinates"
