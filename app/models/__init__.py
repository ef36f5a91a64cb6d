"""SQLAlchemy models package."""

from app.models.profile import Profile
from app.models.product import Product
from app.models.order import Order, OrderItem, OrderStatus
from app.models.expert import Expert, ExpertAvailability
from app.models.appointment import Appointment, AppointmentStatus
from app.models.audit_log import AdminAuditLog

__all__ = [
    "Profile",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Expert",
    "ExpertAvailability",
    "Appointment",
    "AppointmentStatus",
    "AdminAuditLog",
]
