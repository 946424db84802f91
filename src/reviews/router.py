from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from src.database import get_db
from src.reviews.schemas import (
    ReviewCreate, ReviewUpdate, Review, FiveStarReview, ReviewResponse,
    ReviewListResponse, FiveStarReviewListResponse, ReviewDeletedResponse
)
from src.reviews.service import ReviewService

# NotFoundError and ValidationError propagate to the app-wide AppError handler
router = APIRouter()

@router.get("/latest-five-star", response_model=FiveStarReviewListResponse)
def get_latest_five_star_reviews(db: Session = Depends(get_db)):
    """Latest five 5-star reviews with their tour titles"""
    rows = ReviewService.latest_five_star_reviews(db)

    reviews = []
    for review, tour_title in rows:
        review_data = Review.model_validate(review).model_dump()
        review_data["tour_title"] = tour_title
        reviews.append(FiveStarReview(**review_data))

    return FiveStarReviewListResponse(data=reviews)

@router.get("/tour/{tour_id}", response_model=ReviewListResponse)
def get_tour_reviews(tour_id: str, db: Session = Depends(get_db)):
    """Get all reviews of a tour"""
    reviews = ReviewService.list_tour_reviews(db, tour_id)
    return ReviewListResponse(data=[Review.model_validate(r) for r in reviews])

@router.post("/{tour_id}", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(tour_id: str, review: ReviewCreate, db: Session = Depends(get_db)):
    """Submit a review for a tour"""
    db_review = ReviewService.create_review(db, tour_id, review)
    return ReviewResponse(
        message="Review created successfully",
        data=Review.model_validate(db_review)
    )

@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(review_id: str, db: Session = Depends(get_db)):
    """Get a review by ID"""
    return ReviewResponse(data=Review.model_validate(ReviewService.get_review(db, review_id)))

@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(review_id: str, review_update: ReviewUpdate, db: Session = Depends(get_db)):
    """Edit the text or rating of a review"""
    db_review = ReviewService.update_review(db, review_id, review_update)
    return ReviewResponse(
        message="Review updated successfully",
        data=Review.model_validate(db_review)
    )

@router.delete("/{review_id}", response_model=ReviewDeletedResponse)
def delete_review(review_id: str, db: Session = Depends(get_db)):
    """Delete a review"""
    ReviewService.delete_review(db, review_id)
    return ReviewDeletedResponse(message="Review deleted successfully")
