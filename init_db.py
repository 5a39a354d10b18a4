#!/usr/bin/env python3
"""
Database initialization script.
Creates all tables, makes sure the store settings row exists and
optionally loads the demo menu.
"""
import sys

from app import create_app
from extensions import db
from models import StoreSettings

def init_database(with_seed=False):
    """Initialize the database with tables and, on request, seed data."""
    app = create_app()

    with app.app_context():
        print("Creating database tables...")
        db.create_all()
        print("Database tables created successfully!")

        settings = StoreSettings.current()
        print(f"Store settings ready for '{settings.store_name}'")

    if with_seed:
        from seed import seed_data

        print("Running seed script...")
        seed_data()

    print("Database initialization complete!")

if __name__ == "__main__":
    init_database(with_seed="--seed" in sys.argv[1:])
