# ticketing/crud/crud_event.py
from typing import Optional

from sqlalchemy.orm import Session

from ticketing.crud.base import CRUDBase
from ticketing.db.unit_of_work import lock_for_update
from ticketing.models.event import Event
from ticketing.schemas.event import EventCreate


class CRUDEvent(CRUDBase[Event, EventCreate]):
    def get_for_update(self, db: Session, event_id: str) -> Optional[Event]:
        """Fetch the event row with a write lock held until the transaction ends."""
        return lock_for_update(db.query(self.model).filter(self.model.id == event_id)).first()


event = CRUDEvent(Event)
