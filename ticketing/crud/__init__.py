# ticketing/crud/__init__.py

from .crud_event import event
from .ticket_type_crud import ticket_type_crud
from .ticket_purchase_crud import ticket_purchase_crud
from .registration_crud import registration_crud
from .promo_code_crud import promo_code_crud
from .check_in_audit_crud import check_in_audit_crud
