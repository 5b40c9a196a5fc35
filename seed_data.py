#!/usr/bin/env python3

import os
import sys

# Make the src package importable when run as a script
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from src.database import Base, SessionLocal, engine
from src.models import Role
from src.auth.schemas import UserCreate
from src.auth.service import UserService
from src.monuments.service import MonumentService

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for Monument Ticketing System...")

        # 1. Roles
        print("Creating roles...")
        for role_name in ("user", "admin"):
            if not db.query(Role).filter(Role.name == role_name).first():
                db.add(Role(name=role_name))
        db.commit()

        # 2. Gate administrator
        admin_email = os.getenv("SEED_ADMIN_EMAIL", "admin@monuments.local")
        admin_password = os.getenv("SEED_ADMIN_PASSWORD", "admin123")
        admin = UserService.get_user_by_email(db, admin_email)
        if not admin:
            print(f"Creating admin user {admin_email}...")
            admin = UserService.create_user(
                db, UserCreate(name="Gate Administrator", email=admin_email, password=admin_password)
            )
        UserService.assign_role(db, admin.id, "admin")

        # 3. Monument catalog
        print("Creating monuments...")
        created = MonumentService.seed_sample_monuments(db)

        print(f"✅ Seed data created successfully ({created} monuments added)")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
