# ticketing/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from ticketing.core.config import settings

# The engine is the entry point to the database. It's configured with the
# database URL and handles the connection pooling.
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

# SessionLocal is a factory for creating new Session objects.
# One session per request: every transaction the request runs goes through it.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        # 'yield' passes the session object to the endpoint.
        yield db
    finally:
        # Always close the session, even if the endpoint raised.
        db.close()
