# ticketing/api/v1/api.py

from fastapi import APIRouter
from ticketing.api.v1.endpoints import (
    registrations,
    ticket_types,
    promo_codes,
    check_in,
)

# This is the main router for the v1 API.
# It will include all the specific endpoint routers.
api_router = APIRouter()

api_router.include_router(registrations.router)
api_router.include_router(ticket_types.router)
api_router.include_router(promo_codes.router)
api_router.include_router(check_in.router)
