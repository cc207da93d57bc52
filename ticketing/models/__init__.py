# ticketing/models/__init__.py
# Import all models to ensure SQLAlchemy can resolve relationships
# Order matters for dependencies - import base models first

from ticketing.db.base_class import Base
from ticketing.models.event import Event
from ticketing.models.ticket_type import TicketType
from ticketing.models.promo_code import PromoCode
from ticketing.models.registration import Registration
from ticketing.models.ticket_purchase import TicketPurchase
from ticketing.models.check_in_audit import CheckInAuditEntry

__all__ = [
    "Base",
    "Event",
    "TicketType",
    "PromoCode",
    "Registration",
    "TicketPurchase",
    "CheckInAuditEntry",
]
