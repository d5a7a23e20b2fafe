"""SQLAlchemy models, engine wiring and Alembic migrations."""
