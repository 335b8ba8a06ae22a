from datetime import datetime
from pydantic import BaseModel, Field


class ClassFavorite(BaseModel):
    id: int
    member_id: int
    class_id: int
    class_name: str
    class_type: str
    created_at: datetime | None = None


class InstructorRatingCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    review: str | None = None


class InstructorRating(BaseModel):
    id: int
    member_id: int
    class_schedule_id: int
    trainer_id: int
    rating: int
    review: str | None = None

    class Config:
        from_attributes = True


class ClassHistory(BaseModel):
    past_classes_count: int
    upcoming_classes_count: int
    top_class_types: list[str]


class InstructorProfile(BaseModel):
    trainer_id: int
    full_name: str
    bio: str | None = None
    specializations: list[str]
    experience: int
    certifications: str | None = None
    average_rating: float
    ratings_count: int
    class_history: ClassHistory
