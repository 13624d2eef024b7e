from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone
from .managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model where email is the unique login identifier.
    """
    email = models.EmailField(unique=True, db_index=True)
    phone = models.CharField(max_length=20, blank=True)

    first_name = models.CharField(max_length=50, blank=True)
    last_name = models.CharField(max_length=50, blank=True)

    # Device token for push notifications (set by the mobile apps)
    push_token = models.CharField(max_length=255, blank=True)

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    def __str__(self):
        return self.email

    @property
    def role(self):
        """
        Primary role of the account. Stores and drivers are separate
        principals, so in practice an account carries exactly one role.
        """
        role = self.roles.values_list("role", flat=True).first()
        return role


class UserRole(models.Model):
    """
    Role-Based Access Control (RBAC).
    """
    STORE = "store"
    DRIVER = "driver"

    ROLE_CHOICES = (
        (STORE, "Store"),
        (DRIVER, "Driver"),
    )

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="roles")
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)

    class Meta:
        unique_together = ("user", "role")

    def __str__(self):
        return f"{self.user.email} - {self.role}"
