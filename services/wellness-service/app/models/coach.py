"""
Coach Models
Coach directory records and rating requests
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional


class Coach(BaseModel):
    """Coach record as stored in the coaches collection"""

    id: str
    name: str
    specializations: List[str] = Field(default_factory=list)
    bio: Optional[str] = None
    photo: Optional[str] = None
    ratings: List[int] = Field(default_factory=list)

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return str(v)

    @field_validator('ratings', 'specializations', mode='before')
    @classmethod
    def default_empty(cls, v):
        return v or []

    def mean_rating(self) -> Optional[float]:
        if not self.ratings:
            return None
        return round(sum(self.ratings) / len(self.ratings), 2)


class CoachResponse(Coach):
    """Coach record with derived fields"""

    average_rating: Optional[float] = None

    @classmethod
    def from_coach(cls, coach: Coach) -> "CoachResponse":
        return cls(**coach.model_dump(), average_rating=coach.mean_rating())


class RatingRequest(BaseModel):
    """Request model for rating a coach"""

    rating: int

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, v):
        if not 1 <= v <= 5:
            raise ValueError('Rating must be between 1 and 5')
        return v
