from sqlalchemy.orm import Session
from typing import List, Tuple

from loguru import logger

from src.exceptions import NotFoundError, ValidationError
from src.models import Review, Tour
from src.reviews.schemas import ReviewCreate, ReviewUpdate

LATEST_FIVE_STAR_LIMIT = 5


class ReviewService:
    @staticmethod
    def get_tour(db: Session, tour_id: str) -> Tour:
        tour = db.query(Tour).filter(Tour.id == tour_id).first()
        if not tour:
            raise NotFoundError("Tour not found")
        return tour

    @staticmethod
    def create_review(db: Session, tour_id: str, review: ReviewCreate) -> Review:
        """Attach a new review to an existing tour"""
        if review.rating is None:
            raise ValidationError("Tour ID and rating are required")

        ReviewService.get_tour(db, tour_id)

        db_review = Review(
            tour_id=tour_id,
            username=review.username,
            review_text=review.review_text,
            rating=review.rating
        )
        db.add(db_review)
        db.commit()
        db.refresh(db_review)

        logger.info(f"Review {db_review.id} added to tour {tour_id} with rating {db_review.rating}")
        return db_review

    @staticmethod
    def get_review(db: Session, review_id: str) -> Review:
        review = db.query(Review).filter(Review.id == review_id).first()
        if not review:
            raise NotFoundError("Review not found")
        return review

    @staticmethod
    def list_tour_reviews(db: Session, tour_id: str) -> List[Review]:
        """Reviews of a tour, newest first"""
        ReviewService.get_tour(db, tour_id)
        return db.query(Review).filter(
            Review.tour_id == tour_id
        ).order_by(Review.created_at.desc()).all()

    @staticmethod
    def update_review(db: Session, review_id: str, review_update: ReviewUpdate) -> Review:
        db_review = ReviewService.get_review(db, review_id)

        update_data = review_update.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in update_data.items():
            setattr(db_review, field, value)

        db.commit()
        db.refresh(db_review)
        return db_review

    @staticmethod
    def delete_review(db: Session, review_id: str) -> None:
        db_review = ReviewService.get_review(db, review_id)
        db.delete(db_review)
        db.commit()
        logger.info(f"Review {review_id} deleted")

    @staticmethod
    def latest_five_star_reviews(db: Session, limit: int = LATEST_FIVE_STAR_LIMIT) -> List[Tuple[Review, str]]:
        """Most recent reviews rated exactly 5, each paired with its tour title"""
        rows = db.query(Review, Tour.title).join(
            Tour, Review.tour_id == Tour.id
        ).filter(
            Review.rating == 5
        ).order_by(Review.created_at.desc()).limit(limit).all()

        if not rows:
            raise NotFoundError("No 5-star reviews found")
        return [(review, title) for review, title in rows]
