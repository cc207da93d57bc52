# ticketing/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ticketing.api.v1.api import api_router
from ticketing.core.config import settings
from ticketing.core.error_handlers import ticketing_error_handler, validation_error_handler
from ticketing.core.exceptions import TicketingError
from ticketing.core.limiter import limiter

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Schema is managed by Alembic (`alembic upgrade head`).
    logger.info("Ticketing service starting up (env=%s)", settings.ENV)
    yield
    logger.info("Ticketing service shutting down")


app = FastAPI(
    title="Ticketing & Registration Service",
    version="1.0.0",
    description="""
        Registration, ticket inventory, promo codes and check-in for events.

        ## Features

        * **Ticket Types**: Tiered admissions with per-type capacity and early-bird pricing
        * **Registration**: All-or-nothing purchase of a cart of tickets
        * **Promo Codes**: Percentage or fixed discounts with usage limits
        * **Check-in**: Scan or list-based check-in with a full audit trail

        ## Authentication

        All write endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        """,
    lifespan=lifespan,
)

origins = [
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_exception_handler(TicketingError, ticketing_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "ok"}
