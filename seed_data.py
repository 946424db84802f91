#!/usr/bin/env python3

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import sessionmaker
from src.database import engine, init_db
from src.models import Tour, Review, Booking

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for Trips & Travels...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Review).delete()
        db.query(Booking).delete()
        db.query(Tour).delete()

        # 1. Create Tours
        print("Creating tours...")
        tours = [
            Tour(title="Sundarbans", city="Khulna", price=Decimal("5000"), max_group_size=10, featured=True),
            Tour(title="Cox's Bazar", city="Chattogram", price=Decimal("3500"), max_group_size=15, featured=True),
            Tour(title="Sajek Valley", city="Rangamati", price=Decimal("4200"), max_group_size=8, featured=True),
            Tour(title="Srimangal Tea Gardens", city="Sylhet", price=Decimal("2800"), max_group_size=12),
            Tour(title="Saint Martin's Island", city="Teknaf", price=Decimal("6000"), max_group_size=6),
            Tour(title="Paharpur Buddhist Vihara", city="Naogaon", price=Decimal("2200"), max_group_size=20),
        ]
        db.add_all(tours)
        db.flush()

        # 2. Create Reviews (staggered so "latest" ordering is visible)
        print("Creating reviews...")
        now = datetime.now(timezone.utc)
        review_rows = [
            (tours[0], "rahim", "Saw a tiger from the boat. Unreal.", 5),
            (tours[1], "karim", "Longest beach, longest bus ride.", 4),
            (tours[2], "nusrat", "Clouds below the cottage at sunrise.", 5),
            (tours[3], "tanvir", "Seven-layer tea was worth the trip.", 5),
            (tours[4], "farhana", "Crystal water, crowded jetty.", 3),
            (tours[5], "arif", "Great guide, bring water.", 5),
            (tours[0], "mitu", "Mangrove walk was the highlight.", 5),
        ]
        reviews = []
        for index, (tour, username, text, rating) in enumerate(review_rows):
            created_at = now - timedelta(hours=index)
            reviews.append(Review(
                tour_id=tour.id,
                username=username,
                review_text=text,
                rating=rating,
                created_at=created_at,
                updated_at=created_at
            ))
        db.add_all(reviews)

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data for Trips & Travels!")
        print(f"Created:")
        print(f"  - {len(tours)} tours")
        print(f"  - {len(reviews)} reviews")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
