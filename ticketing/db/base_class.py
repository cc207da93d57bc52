# ticketing/db/base_class.py

from sqlalchemy.orm import declarative_base

# Shared declarative base for every ticketing table; Alembic reads its metadata.
Base = declarative_base()
