"""
JWT-based ticket credentials.

A credential is an HS256 JWT signed with the service's QR signing secret.
Scanner apps send it back verbatim; the server verifies it and resolves the
registration it names before handing off to check-in.

Claims:
  rid: registration ID
  eid: event ID the registration belongs to
  sub: user ID of the ticket owner
  tno: human-readable ticket number (TKT-XXXXXX-XX)
  qty: admissions covered by the registration
  iat: issued-at timestamp
  exp: event end plus a grace period (24h by default)
  v:   credential format version
"""

import jwt
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from ticketing.core.config import settings
from ticketing.core.exceptions import InvalidToken
from ticketing.core.time_utils import to_timestamp, utcnow

logger = logging.getLogger(__name__)

CREDENTIAL_VERSION = 1
REQUIRED_CLAIMS = ("rid", "eid", "sub", "tno", "qty", "iat", "exp", "v")


@dataclass(frozen=True)
class CredentialClaims:
    registration_id: str
    event_id: str
    user_id: str
    ticket_number: str
    quantity: int


class TicketCredentialCodec:
    """Signs and verifies ticket credentials."""

    algorithm = "HS256"

    def __init__(self, secret: str, ttl_hours_after_event: int = 24):
        self._secret = secret
        self._ttl = timedelta(hours=ttl_hours_after_event)

    def sign(self, registration, event) -> str:
        """Mint a credential for a committed registration of ``event``."""
        now = utcnow()
        exp = (event.end_date or now) + self._ttl
        payload = {
            "rid": registration.id,
            "eid": registration.event_id,
            "sub": registration.user_id,
            "tno": registration.ticket_number,
            "qty": registration.ticket_count,
            "iat": to_timestamp(now),
            "exp": to_timestamp(exp),
            "v": CREDENTIAL_VERSION,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> CredentialClaims:
        """Decode a credential, raising InvalidToken if it cannot be trusted."""
        if not token or not is_jwt_qr(token):
            raise InvalidToken("Invalid QR code format")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": list(REQUIRED_CLAIMS)},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Ticket credential has expired")
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected ticket credential: {e}")
            raise InvalidToken()

        if claims.get("v") != CREDENTIAL_VERSION:
            raise InvalidToken("Unsupported ticket credential version")

        return CredentialClaims(
            registration_id=claims["rid"],
            event_id=claims["eid"],
            user_id=claims["sub"],
            ticket_number=claims["tno"],
            quantity=int(claims["qty"]),
        )


def is_jwt_qr(data: str) -> bool:
    """JWT tokens have exactly 2 dots (header.payload.signature) and no pipes."""
    return data.count(".") == 2 and "|" not in data


credential_codec = TicketCredentialCodec(
    settings.QR_SIGNING_SECRET, settings.CREDENTIAL_TTL_HOURS_AFTER_EVENT
)
