# ticketing/services/ticket_management/promo_evaluator.py
"""
Promo Evaluator

Decides whether a promo code applies to a cart and how much it takes off.
Rules run in a fixed order and the first failing rule names the rejection.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ticketing.core.exceptions import (
    DuplicateCode,
    EventNotFound,
    Forbidden,
    InvalidPromo,
    PromoCodeNotFound,
    TicketTypeUnavailable,
)
from ticketing.core.time_utils import utcnow
from ticketing.crud.crud_event import event as event_crud
from ticketing.crud.promo_code_crud import promo_code_crud
from ticketing.crud.ticket_purchase_crud import ticket_purchase_crud
from ticketing.crud.ticket_type_crud import ticket_type_crud
from ticketing.db.unit_of_work import transaction
from ticketing.models.event import Event
from ticketing.models.promo_code import PromoCode
from ticketing.schemas.ticket_management import (
    CartItem,
    PromoCodeCreate,
    PromoCodeListItem,
    PromoValidationResponse,
)
from ticketing.schemas.token import TokenPayload

logger = logging.getLogger(__name__)


@dataclass
class PromoEvaluation:
    promo_code: PromoCode
    discount: int


def compute_discount(promo_code: PromoCode, subtotal: int) -> int:
    """Discount in cents, never more than the subtotal."""
    if subtotal <= 0:
        return 0
    if promo_code.discount_type == "PERCENTAGE":
        discount = subtotal * promo_code.discount_value // 100
    else:
        # FIXED_AMOUNT and EARLY_BIRD both take a flat amount off.
        discount = promo_code.discount_value
    return max(0, min(discount, subtotal))


def distribute_discount(discount: int, line_subtotals: Sequence[int]) -> List[int]:
    """
    Split ``discount`` across cart lines in proportion to their subtotals.

    Shares are whole cents and the last line absorbs the rounding remainder,
    so the shares always add up to the discount exactly.
    """
    if not line_subtotals:
        return []
    total = sum(line_subtotals)
    if total <= 0 or discount <= 0:
        return [0] * len(line_subtotals)

    shares = [discount * line // total for line in line_subtotals[:-1]]
    shares.append(discount - sum(shares))
    return shares


def _format_cents(amount: int) -> str:
    return f"${amount / 100:.2f}"


class PromoEvaluator:
    """Validates promo codes against a cart and manages the codes themselves."""

    def __init__(self, promo_codes=promo_code_crud, events=event_crud):
        self.promo_codes = promo_codes
        self.events = events

    def evaluate(
        self,
        db: Session,
        code: str,
        event_id: str,
        user_id: str,
        subtotal: int,
        ticket_type_ids: Sequence[str] = (),
        now: Optional[datetime] = None,
    ) -> PromoEvaluation:
        """Apply every rule in order; raises InvalidPromo on the first that fails."""
        now = now or utcnow()
        promo = self.promo_codes.get_by_code(db, code)

        if promo is None:
            raise InvalidPromo("PROMO_NOT_FOUND", "Invalid promo code", code)

        if not promo.is_active:
            raise InvalidPromo("PROMO_INACTIVE", "Promo code is no longer active", promo.code)

        if promo.event_id is not None and promo.event_id != event_id:
            raise InvalidPromo("PROMO_WRONG_EVENT", "Promo code is not valid for this event", promo.code)

        if promo.valid_from is not None and now < promo.valid_from:
            raise InvalidPromo("PROMO_NOT_YET_VALID", "Promo code is not yet valid", promo.code)
        if promo.valid_until is not None and now > promo.valid_until:
            raise InvalidPromo("PROMO_EXPIRED", "Promo code has expired", promo.code)

        if promo.max_uses is not None and promo.used_count >= promo.max_uses:
            raise InvalidPromo("PROMO_MAX_USES", "Promo code has reached maximum uses", promo.code)

        user_uses = self.promo_codes.get_user_usage_count(db, promo.id, user_id)
        if user_uses >= promo.max_uses_per_user:
            raise InvalidPromo("PROMO_USER_LIMIT", "You have already used this promo code", promo.code)

        if promo.min_purchase_amount is not None and subtotal < promo.min_purchase_amount:
            raise InvalidPromo(
                "PROMO_MIN_PURCHASE",
                f"Minimum purchase of {_format_cents(promo.min_purchase_amount)} required",
                promo.code,
            )

        applicable = promo.applicable_ticket_types or []
        if applicable and not any(tt_id in applicable for tt_id in ticket_type_ids):
            raise InvalidPromo(
                "PROMO_NOT_APPLICABLE",
                "Promo code does not apply to the selected tickets",
                promo.code,
            )

        return PromoEvaluation(promo_code=promo, discount=compute_discount(promo, subtotal))

    # ========================================
    # Preview
    # ========================================

    def preview(
        self,
        db: Session,
        event_id: str,
        user_id: str,
        code: str,
        items: Sequence[CartItem] = (),
        quantity: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PromoValidationResponse:
        """Price a prospective cart with the code applied. Nothing is written."""
        now = now or utcnow()
        event = self.events.get(db, event_id)
        if event is None:
            raise EventNotFound(event_id)

        subtotal, ticket_type_ids = self._price_cart(db, event, items, quantity, now)
        try:
            evaluation = self.evaluate(db, code, event_id, user_id, subtotal, ticket_type_ids, now)
        except InvalidPromo as e:
            return PromoValidationResponse(
                is_valid=False,
                code=code.strip().upper(),
                subtotal=subtotal,
                discount=0,
                total=subtotal,
                error_code=e.reason,
                error_message=e.message,
            )

        promo = evaluation.promo_code
        return PromoValidationResponse(
            is_valid=True,
            code=promo.code,
            discount_type=promo.discount_type,
            discount_value=promo.discount_value,
            subtotal=subtotal,
            discount=evaluation.discount,
            total=subtotal - evaluation.discount,
        )

    def _price_cart(self, db: Session, event: Event, items, quantity, now):
        if not items:
            return event.price * (quantity or 1), []
        subtotal = 0
        for item in items:
            tt = ticket_type_crud.get(db, item.ticket_type_id)
            if tt is None or tt.event_id != event.id:
                raise TicketTypeUnavailable(item.ticket_type_id)
            subtotal += tt.current_price(now) * item.quantity
        return subtotal, [item.ticket_type_id for item in items]

    # ========================================
    # Promo Code Management
    # ========================================

    def create_promo_code(
        self,
        db: Session,
        event_id: str,
        input_data: PromoCodeCreate,
        actor: TokenPayload,
    ) -> PromoCode:
        """Create a code for the event, or a global one when requested by an admin."""
        event = self.events.get(db, event_id)
        if event is None:
            raise EventNotFound(event_id)
        _ensure_can_manage(event, actor)
        if not input_data.event_scoped and not actor.is_admin:
            raise Forbidden("Only administrators can create global promo codes")

        if self.promo_codes.get_by_code(db, input_data.code) is not None:
            raise DuplicateCode(input_data.code)

        scope = event_id if input_data.event_scoped else None
        try:
            with transaction(db):
                promo = self.promo_codes.create(db, input_data, scope, created_by=actor.sub)
        except IntegrityError:
            # Lost a race with another request creating the same code.
            raise DuplicateCode(input_data.code)

        logger.info(f"Promo code {promo.code} created for event {event_id} by {actor.sub}")
        return promo

    def list_promo_codes(
        self, db: Session, event_id: str, actor: TokenPayload
    ) -> List[PromoCodeListItem]:
        event = self.events.get(db, event_id)
        if event is None:
            raise EventNotFound(event_id)
        _ensure_can_manage(event, actor)

        result = []
        for promo in self.promo_codes.get_by_event(db, event_id, include_global=actor.is_admin):
            item = PromoCodeListItem.model_validate(promo)
            item.purchase_count = ticket_purchase_crud.count_by_promo_code(db, promo.id)
            result.append(item)
        return result

    def delete_promo_code(self, db: Session, promo_code_id: str, actor: TokenPayload) -> None:
        promo = self.promo_codes.get(db, promo_code_id)
        if promo is None:
            raise PromoCodeNotFound(promo_code_id)
        if promo.event is not None:
            _ensure_can_manage(promo.event, actor)
        elif not actor.is_admin:
            raise Forbidden()

        with transaction(db):
            self.promo_codes.delete(db, promo)
        logger.info(f"Promo code {promo_code_id} deleted by {actor.sub}")


def _ensure_can_manage(event: Event, actor: TokenPayload) -> None:
    if event.organizer_id != actor.sub and not actor.is_admin:
        logger.warning(f"User {actor.sub} denied promo code management on event {event.id}")
        raise Forbidden()


promo_evaluator = PromoEvaluator()
