from datetime import datetime
from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str
    description: str | None = None
    class_type: str
    trainer_id: int
    schedule: datetime
    duration: int = Field(gt=0, description="Duration in minutes")
    capacity: int = Field(gt=0)
    recurrence_rule: str | None = None
    occurrences: int | None = Field(default=None, gt=0)


class ClassUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    class_type: str | None = None
    trainer_id: int | None = None
    schedule: datetime | None = None
    duration: int | None = Field(default=None, gt=0)
    capacity: int | None = Field(default=None, gt=0)


class ClassFilters(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    skip: int = Field(default=0, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    trainer_id: int | None = None
    class_type: str | None = None


class ClassSchedule(BaseModel):
    id: int
    class_id: int
    name: str
    description: str | None = None
    trainer_id: int
    trainer_name: str | None = None
    schedule: datetime
    end_time: datetime
    duration: int
    capacity: int
    class_type: str
    is_active: bool
    available_slots: int


class PaginatedClasses(BaseModel):
    data: list[ClassSchedule]
    page: int
    limit: int
    total: int
    total_pages: int
