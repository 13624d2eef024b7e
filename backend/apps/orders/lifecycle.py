# apps/orders/lifecycle.py
from typing import NamedTuple

from apps.utils.exceptions import InvalidTransition
from .models import OrderStatus

STORE = "STORE"
DRIVER = "DRIVER"


class Edge(NamedTuple):
    source: str
    target: str
    actor: str


# The only legal moves. Every state is entered by exactly one edge.
TRANSITIONS = (
    Edge(OrderStatus.CREATED, OrderStatus.PREPARING, STORE),
    Edge(OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP, STORE),
    Edge(OrderStatus.READY_FOR_PICKUP, OrderStatus.ACCEPTED, DRIVER),
    Edge(OrderStatus.ACCEPTED, OrderStatus.PICKED_UP, DRIVER),
    Edge(OrderStatus.PICKED_UP, OrderStatus.DELIVERED, DRIVER),
)

_EDGES_BY_TARGET = {edge.target: edge for edge in TRANSITIONS}

DELETABLE_STATUSES = (OrderStatus.CREATED, OrderStatus.PREPARING)


def edge_into(target) -> Edge:
    """Returns the single edge that leads into `target`."""
    try:
        return _EDGES_BY_TARGET[target]
    except KeyError:
        raise InvalidTransition(f"Cannot move an order to {target}")


def targets_for(actor):
    return [edge.target for edge in TRANSITIONS if edge.actor == actor]


def validate(current, target) -> Edge:
    edge = edge_into(target)
    if current == target:
        raise InvalidTransition(f"Order is already {target}")
    if current != edge.source:
        raise InvalidTransition(f"Order must be {edge.source} first")
    return edge


def can_delete(status) -> bool:
    return status in DELETABLE_STATUSES
