"""
Tour Reviews Module

Review CRUD over tours plus the homepage testimonial query (latest five
reviews rated exactly 5, newest first, with the tour title).
"""

from .router import router
from .service import ReviewService

__all__ = [
    "router",
    "ReviewService"
]
