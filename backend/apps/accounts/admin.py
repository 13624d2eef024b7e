from django import forms
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from django.urls import reverse
from django.utils.html import format_html
from django.utils.timezone import localtime
from .models import User, UserRole


class AccountCreationForm(forms.ModelForm):
    """
    Staff-side account creation. Store and driver profiles are attached
    afterwards from their own admin pages (or the create_store /
    create_driver commands).
    """
    password = forms.CharField(widget=forms.PasswordInput)

    class Meta:
        model = User
        fields = ('email', 'phone')

    def save(self, commit=True):
        user = super().save(commit=False)
        user.set_password(self.cleaned_data["password"])
        if commit:
            user.save()
        return user


class UserRoleInline(admin.TabularInline):
    model = UserRole
    extra = 0
    max_num = 1
    fields = ('role',)


@admin.register(User)
class AccountAdmin(UserAdmin):
    add_form = AccountCreationForm

    list_display = (
        'email',
        'role_badge',
        'profile_link',
        'has_push_token',
        'is_active',
        'last_login_date',
    )
    list_filter = ('roles__role', 'is_active', 'is_staff')
    search_fields = ('email', 'phone', 'store_profile__name', 'driver_profile__name')
    ordering = ('-created_at',)
    list_per_page = 25
    actions = ['clear_push_tokens', 'deactivate_accounts']
    inlines = [UserRoleInline]

    fieldsets = (
        (None, {'fields': ('email', 'password', 'phone')}),
        ('Device', {'fields': ('push_token',)}),
        ('Access', {'fields': ('is_active', 'is_staff', 'is_superuser')}),
        ('Activity', {'fields': ('last_login', 'created_at'), 'classes': ('collapse',)}),
    )
    add_fieldsets = (
        (None, {'classes': ('wide',), 'fields': ('email', 'phone', 'password')}),
    )
    readonly_fields = ('created_at', 'last_login')
    filter_horizontal = ()

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('store_profile', 'driver_profile').prefetch_related('roles')

    def role_badge(self, obj):
        roles = [r.role for r in obj.roles.all()]
        if not roles:
            return "staff" if obj.is_staff else "-"
        color = '#e83e8c' if UserRole.STORE in roles else '#17a2b8'
        return format_html(
            '<span style="background-color: {}; color: white; padding: 2px 6px; border-radius: 4px;">{}</span>',
            color, ", ".join(roles)
        )
    role_badge.short_description = "Role"

    def profile_link(self, obj):
        store = getattr(obj, 'store_profile', None)
        if store is not None:
            url = reverse('admin:stores_store_change', args=[store.pk])
            return format_html('<a href="{}">{}</a>', url, store.name)
        driver = getattr(obj, 'driver_profile', None)
        if driver is not None:
            url = reverse('admin:drivers_driverprofile_change', args=[driver.pk])
            return format_html('<a href="{}">{}</a>', url, driver.name)
        return "-"
    profile_link.short_description = "Profile"

    def has_push_token(self, obj):
        return bool(obj.push_token)
    has_push_token.boolean = True
    has_push_token.short_description = "Push"

    def last_login_date(self, obj):
        if obj.last_login:
            return localtime(obj.last_login).strftime('%d/%m/%Y %H:%M')
        return "never"
    last_login_date.short_description = "Last login"
    last_login_date.admin_order_field = 'last_login'

    @admin.action(description='Clear push tokens (stop notifications)')
    def clear_push_tokens(self, request, queryset):
        updated = queryset.update(push_token="")
        self.message_user(request, f"Cleared push token on {updated} accounts.")

    @admin.action(description='Deactivate selected accounts')
    def deactivate_accounts(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} accounts deactivated.")
