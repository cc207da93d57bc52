# ticketing/services/ticket_management/registration_service.py
"""
Registration Orchestrator

Turns a cart into a committed registration:

  VALIDATING  event state, duplicate registration, cart shape
  PRICING     effective prices, promo evaluation, discount split
  COMMITTING  registration, purchase lines, inventory and promo usage in
              one transaction
  ISSUING     credential minted after commit
  DONE

Every write of COMMITTING succeeds together or not at all. Credential
issuance happens after the commit, so a failure there is reported without
undoing the registration and can be retried with ``reissue_credential``.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ticketing.core.config import settings
from ticketing.core.exceptions import (
    AlreadyRegistered,
    CommitFailed,
    EventEnded,
    EventNotFound,
    EventNotPublished,
    InsufficientInventory,
    InvalidPromo,
    NotRegistered,
    RegistrationNotFound,
    TicketTypeUnavailable,
    ValidationError,
    WithinCancellationLockout,
)
from ticketing.core.time_utils import utcnow
from ticketing.crud.crud_event import event as event_crud
from ticketing.crud.promo_code_crud import promo_code_crud
from ticketing.crud.registration_crud import registration_crud
from ticketing.crud.ticket_purchase_crud import ticket_purchase_crud
from ticketing.crud.ticket_type_crud import ticket_type_crud
from ticketing.db.unit_of_work import RETRYABLE_ERRORS, run_in_transaction
from ticketing.models.event import Event
from ticketing.models.registration import Registration
from ticketing.models.ticket_type import TicketType
from ticketing.schemas.registration import RegisterRequest, RegistrationSummary
from ticketing.services.ticket_management.inventory_ledger import (
    FlatCapacitySource,
    InventorySource,
    TicketTypeSource,
    validate_quantity,
)
from ticketing.services.ticket_management.promo_evaluator import (
    PromoEvaluator,
    distribute_discount,
)
from ticketing.services.ticket_management.qr_signing import credential_codec

logger = logging.getLogger(__name__)

UNIQUE_REGISTRATION_CONSTRAINT = "unique_user_event_registration"


class Stage:
    VALIDATING = "VALIDATING"
    PRICING = "PRICING"
    COMMITTING = "COMMITTING"
    ISSUING = "ISSUING"
    DONE = "DONE"


@dataclass
class PricedLine:
    ticket_type: TicketType
    quantity: int
    unit_price: int
    discount: int = 0

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity


@dataclass
class RegistrationResult:
    registration: Registration
    summary: RegistrationSummary
    credential_error: Optional[str] = None
    stage: str = Stage.DONE


@dataclass
class _Quote:
    """Everything decided before COMMITTING."""
    event: Event
    lines: List[PricedLine] = field(default_factory=list)
    legacy_quantity: int = 0
    reservations: List[Tuple[InventorySource, int]] = field(default_factory=list)
    subtotal: int = 0
    discount: int = 0
    promo_code_id: Optional[str] = None
    promo_code: Optional[str] = None

    @property
    def ticket_count(self) -> int:
        if self.lines:
            return sum(line.quantity for line in self.lines)
        return self.legacy_quantity

    @property
    def total(self) -> int:
        return self.subtotal - self.discount


def _admission_numbers(ticket_number: str, quantity: int) -> List[str]:
    """One identifier per admission, derived from the registration's ticket number."""
    return [f"{ticket_number}-{secrets.token_hex(2).upper()}{i + 1:02d}" for i in range(quantity)]


def _is_unique_registration_violation(error: IntegrityError) -> bool:
    text = str(error.orig).lower()
    return (
        UNIQUE_REGISTRATION_CONSTRAINT in text
        or "registrations.user_id, registrations.event_id" in text
    )


class RegistrationService:
    """Coordinates ledger, promo evaluator and credential codec for one registration."""

    def __init__(
        self,
        ticket_types=ticket_type_crud,
        registrations=registration_crud,
        promo_codes=promo_code_crud,
        events=event_crud,
        purchases=ticket_purchase_crud,
        codec=credential_codec,
        max_attempts: int = settings.REGISTRATION_MAX_ATTEMPTS,
        backoff_base: float = settings.REGISTRATION_RETRY_BACKOFF,
        cancellation_lockout_hours: int = settings.CANCELLATION_LOCKOUT_HOURS,
    ):
        self.ticket_types = ticket_types
        self.registrations = registrations
        self.promo_codes = promo_codes
        self.events = events
        self.purchases = purchases
        self.codec = codec
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.cancellation_lockout_hours = cancellation_lockout_hours
        self.promo_evaluator = PromoEvaluator(promo_codes=promo_codes, events=events)

    # ========================================
    # Register
    # ========================================

    def register(
        self,
        db: Session,
        user_id: str,
        event_id: str,
        request: RegisterRequest,
        now: Optional[datetime] = None,
    ) -> RegistrationResult:
        now = now or utcnow()
        stage = {"current": Stage.VALIDATING}

        def attempt(session: Session) -> Registration:
            stage["current"] = Stage.VALIDATING
            quote = self._validate(session, user_id, event_id, request, now)
            stage["current"] = Stage.PRICING
            self._price(session, quote, user_id, request, now)
            stage["current"] = Stage.COMMITTING
            return self._write(session, quote, user_id, request)

        try:
            registration = run_in_transaction(
                db, attempt, attempts=self.max_attempts, backoff_base=self.backoff_base
            )
        except IntegrityError as e:
            if _is_unique_registration_violation(e):
                logger.info(f"Duplicate registration for user {user_id} on event {event_id}")
                raise AlreadyRegistered(event_id)
            logger.error(f"Registration commit failed for event {event_id} at {stage['current']}: {e}")
            raise CommitFailed()
        except RETRYABLE_ERRORS as e:
            logger.error(
                f"Registration for event {event_id} gave up after {self.max_attempts} attempts: {e}"
            )
            raise CommitFailed()
        except SQLAlchemyError as e:
            logger.error(f"Registration commit failed for event {event_id} at {stage['current']}: {e}")
            raise CommitFailed()
        except Exception as e:
            logger.info(
                f"Registration for user {user_id} on event {event_id} rejected at "
                f"{stage['current']}: {type(e).__name__}"
            )
            raise

        logger.info(
            f"Registration {registration.id} committed: user={user_id} event={event_id} "
            f"tickets={registration.quantity} total={registration.final_amount}"
        )

        summary = RegistrationSummary(
            subtotal=registration.total_amount,
            discount=registration.discount_amount,
            total=registration.final_amount,
            ticket_count=registration.ticket_count,
        )

        credential_error = self._issue_credential(db, registration)
        if credential_error:
            return RegistrationResult(registration, summary, credential_error, stage=Stage.ISSUING)
        return RegistrationResult(registration, summary)

    def _validate(
        self, db: Session, user_id: str, event_id: str, request: RegisterRequest, now: datetime
    ) -> _Quote:
        event = self.events.get(db, event_id)
        if event is None:
            raise EventNotFound(event_id)
        if not event.is_published:
            raise EventNotPublished(event_id, event.status)
        if event.end_date is not None and event.end_date < now:
            raise EventEnded(event_id)
        if self.registrations.get_by_user_and_event(db, user_id=user_id, event_id=event_id):
            raise AlreadyRegistered(event_id)

        quote = _Quote(event=event)
        if self.ticket_types.count_by_event(db, event_id) == 0:
            if request.items:
                raise ValidationError("This event does not sell ticket types", field="items")
            quote.legacy_quantity = request.quantity or 1
            quote.reservations.append((FlatCapacitySource(event), quote.legacy_quantity))
            return quote

        if not request.items:
            raise ValidationError("Select at least one ticket", field="items")

        # Merge repeated lines for the same type.
        merged: Dict[str, int] = {}
        for item in request.items:
            merged[item.ticket_type_id] = merged.get(item.ticket_type_id, 0) + item.quantity

        for ticket_type_id, quantity in merged.items():
            tt = self.ticket_types.get(db, ticket_type_id)
            if tt is None or tt.event_id != event_id or tt.status == "INACTIVE":
                raise TicketTypeUnavailable(ticket_type_id)
            if tt.status == "SOLD_OUT":
                raise InsufficientInventory(
                    f"{tt.name} is sold out", available=0, requested=quantity, ticket_type_id=tt.id
                )
            validate_quantity(tt, quantity, tt.quantity_available)
            quote.lines.append(PricedLine(ticket_type=tt, quantity=quantity, unit_price=0))
            quote.reservations.append((TicketTypeSource(tt), quantity))
        return quote

    def _price(
        self, db: Session, quote: _Quote, user_id: str, request: RegisterRequest, now: datetime
    ) -> None:
        if quote.lines:
            for line in quote.lines:
                line.unit_price = line.ticket_type.current_price(now)
            quote.subtotal = sum(line.subtotal for line in quote.lines)
        else:
            quote.subtotal = quote.event.price * quote.legacy_quantity

        if not request.promo_code:
            return

        evaluation = self.promo_evaluator.evaluate(
            db,
            request.promo_code,
            quote.event.id,
            user_id,
            quote.subtotal,
            [line.ticket_type.id for line in quote.lines],
            now,
        )
        quote.discount = evaluation.discount
        quote.promo_code_id = evaluation.promo_code.id
        quote.promo_code = evaluation.promo_code.code
        if quote.lines:
            shares = distribute_discount(quote.discount, [line.subtotal for line in quote.lines])
            for line, share in zip(quote.lines, shares):
                line.discount = share

    def _write(
        self, db: Session, quote: _Quote, user_id: str, request: RegisterRequest
    ) -> Registration:
        attendee_info = request.attendee.model_dump(exclude_none=True)
        if not quote.lines:
            attendee_info["quantity"] = quote.legacy_quantity

        registration = self.registrations.create(
            db,
            event_id=quote.event.id,
            user_id=user_id,
            quantity=quote.ticket_count,
            total_amount=quote.subtotal,
            final_amount=quote.total,
            payment_status="COMPLETED" if quote.total == 0 else "PENDING",
            promo_code_used=quote.promo_code,
            attendee_info=attendee_info,
        )
        db.flush()

        for source, quantity in quote.reservations:
            source.reserve(db, quantity)

        for line in quote.lines:
            self.purchases.create(
                db,
                registration_id=registration.id,
                ticket_type_id=line.ticket_type.id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount=line.discount,
                promo_code_id=quote.promo_code_id,
                ticket_numbers=_admission_numbers(registration.ticket_number, line.quantity),
            )

        if quote.promo_code_id and not self.promo_codes.increment_usage(db, quote.promo_code_id):
            raise InvalidPromo("PROMO_MAX_USES", "Promo code has reached maximum uses", quote.promo_code)

        db.flush()
        return registration

    # ========================================
    # Credentials
    # ========================================

    def _issue_credential(self, db: Session, registration: Registration) -> Optional[str]:
        try:
            token = self.codec.sign(registration, registration.event)
            registration.qr_code = token
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Credential issuance failed for registration {registration.id}: {e}")
            return "Ticket credential could not be issued; it can be re-issued later"
        return None

    def reissue_credential(self, db: Session, registration_id: str, user_id: str, is_admin: bool = False) -> Registration:
        """Mint a fresh credential for an already committed registration."""
        registration = self.registrations.get(db, registration_id)
        if registration is None or (registration.user_id != user_id and not is_admin):
            raise RegistrationNotFound(registration_id)
        registration.qr_code = self.codec.sign(registration, registration.event)
        db.commit()
        db.refresh(registration)
        logger.info(f"Credential re-issued for registration {registration_id}")
        return registration

    # ========================================
    # Cancel
    # ========================================

    def cancel(
        self, db: Session, user_id: str, event_id: str, now: Optional[datetime] = None
    ) -> None:
        now = now or utcnow()

        def attempt(session: Session) -> None:
            event = self.events.get(session, event_id)
            if event is None:
                raise EventNotFound(event_id)
            registration = self.registrations.get_by_user_and_event(
                session, user_id=user_id, event_id=event_id
            )
            if registration is None:
                raise NotRegistered(event_id)

            hours_until_start = (event.start_date - now).total_seconds() / 3600
            if 0 < hours_until_start < self.cancellation_lockout_hours:
                raise WithinCancellationLockout(self.cancellation_lockout_hours, hours_until_start)

            released = [(p.ticket_type, p.quantity) for p in registration.ticket_purchases]
            self.registrations.delete(session, registration)
            for ticket_type, quantity in released:
                TicketTypeSource(ticket_type).release(session, quantity)

        run_in_transaction(db, attempt, attempts=self.max_attempts, backoff_base=self.backoff_base)
        logger.info(f"Registration cancelled: user={user_id} event={event_id}")

    # ========================================
    # Queries
    # ========================================

    def list_for_user(self, db: Session, user_id: str) -> List[Registration]:
        return self.registrations.get_multi_by_user(db, user_id=user_id)


registration_service = RegistrationService()
