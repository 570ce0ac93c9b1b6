"""
Database initialization script.
"""
from paygate.core.logging import configure_logging
from paygate.db.session import SessionLocal, init_db
from paygate.services.role_service import seed_default_roles

if __name__ == "__main__":
    configure_logging()
    print("Initializing database...")
    init_db()
    db = SessionLocal()
    try:
        roles = seed_default_roles(db)
    finally:
        db.close()
    print(f"Database initialized successfully! Seeded {len(roles)} role(s).")
