"""Script to initialize the database."""

from app.config import settings
from app.database import get_engine, init_db
from app.services.clinic_service import seed_demo_clinic
from app.stores.sql import SQLClinicDirectory


def main() -> None:
    """Create all tables and optionally seed the demo clinic."""
    engine = get_engine()
    init_db(engine)

    if settings.seed_demo_clinic:
        seed_demo_clinic(SQLClinicDirectory(engine))

    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    main()
