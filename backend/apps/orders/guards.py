# apps/orders/guards.py
from typing import Optional

from apps.accounts.models import UserRole
from apps.drivers.models import DriverProfile
from apps.stores.models import Store
from apps.utils.exceptions import AcceptConflict, Forbidden
from . import lifecycle
from .models import Order, OrderStatus


class Principal:
    """
    Authenticated caller resolved to exactly one store or driver identity.
    """

    def __init__(self, user_id, role, store: Optional[Store] = None, driver: Optional[DriverProfile] = None):
        self.user_id = user_id
        self.role = role
        self.store = store
        self.driver = driver

    @property
    def identity(self):
        """Key used for per-caller throttling."""
        return f"{self.role.lower()}:{self.user_id}"

    @classmethod
    def from_user(cls, user, as_role=None):
        """
        Resolves the caller as a store or a driver. `as_role` picks the side
        a route serves, so an account holding both roles acts as the right one.
        """
        if not user or not user.is_authenticated:
            raise Forbidden("Authentication required")

        roles = set(user.roles.values_list("role", flat=True))
        wanted = (as_role,) if as_role else (lifecycle.STORE, lifecycle.DRIVER)

        for role in wanted:
            if role == lifecycle.STORE and UserRole.STORE in roles:
                store = Store.objects.filter(user=user).first()
                if store:
                    return cls(user.id, lifecycle.STORE, store=store)

            if role == lifecycle.DRIVER and UserRole.DRIVER in roles:
                driver = DriverProfile.objects.filter(user=user).first()
                if driver:
                    return cls(user.id, lifecycle.DRIVER, driver=driver)

        if as_role:
            raise Forbidden(f"Account is not linked to a {as_role.lower()} profile")
        raise Forbidden("Account is not linked to a store or driver")

    @property
    def is_store(self):
        return self.role == lifecycle.STORE

    @property
    def is_driver(self):
        return self.role == lifecycle.DRIVER


class AuthorizationGuard:
    """
    Role and ownership checks, run before the lifecycle table is consulted.
    """

    @staticmethod
    def authorize(principal: Principal, order: Order, target_status):
        edge = lifecycle.edge_into(target_status)

        # 1. Role must match the edge actor
        if principal.role != edge.actor:
            raise Forbidden(f"Only a {edge.actor.lower()} can set status {target_status}")

        # 2. Stores act on their own orders only
        if edge.actor == lifecycle.STORE:
            AuthorizationGuard.require_owner(principal, order)
            return edge

        # 3. Past accept, only the assignee may act
        if edge.target != OrderStatus.ACCEPTED:
            AuthorizationGuard.require_assignee(principal, order)
            return edge

        # 4. Accept needs an unassigned order. A repeat accept by the
        # assignee is left to the lifecycle check.
        if order.driver_id is not None and order.driver_id != principal.driver.id:
            raise AcceptConflict("Order already accepted by another driver")
        return edge

    @staticmethod
    def require_owner(principal: Principal, order: Order):
        if not principal.is_store or order.store_id != principal.store.id:
            raise Forbidden("Order does not belong to your store")

    @staticmethod
    def require_assignee(principal: Principal, order: Order):
        if not principal.is_driver or order.driver_id != principal.driver.id:
            raise Forbidden("Order is not assigned to you")
