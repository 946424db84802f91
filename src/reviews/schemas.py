from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime

class ReviewBase(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

class ReviewCreate(ReviewBase):
    username: str = Field(..., min_length=1, max_length=255)
    review_text: str = Field(..., min_length=1)
    rating: Optional[int] = Field(None, ge=0, le=5)

class ReviewUpdate(ReviewBase):
    review_text: Optional[str] = Field(None, min_length=1)
    rating: Optional[int] = Field(None, ge=0, le=5)

class Review(ReviewBase):
    id: str
    tour_id: str
    username: str
    review_text: str
    rating: int
    created_at: datetime
    updated_at: datetime

class FiveStarReview(Review):
    tour_title: str

class ReviewResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Review

class ReviewListResponse(BaseModel):
    success: bool = True
    data: List[Review]

class FiveStarReviewListResponse(BaseModel):
    success: bool = True
    data: List[FiveStarReview]

class ReviewDeletedResponse(BaseModel):
    success: bool = True
    message: str
