from jose import jwt
from ticketing.core.config import settings
from ticketing.schemas.token import TokenPayload, UserRole


def make_actor(user_id: str = "user_test", role: UserRole = UserRole.ATTENDEE, name: str = None) -> TokenPayload:
    return TokenPayload(sub=user_id, role=role, name=name, exp=9999999999)


def get_user_authentication_headers(
    user_id: str = "user_test", role: UserRole = UserRole.ATTENDEE, org_id: str = None
) -> dict[str, str]:
    """
    Generates a valid JWT token and authentication headers for a test user.
    """
    payload = TokenPayload(
        sub=user_id, org_id=org_id, role=role, exp=9999999999
    )  # High expiration for tests
    token = jwt.encode(
        payload.model_dump(mode="json", by_alias=True), settings.JWT_SECRET, algorithm="HS256"
    )
    return {"Authorization": f"Bearer {token}"}
