from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from ..models.class_package import ClassPassType


class ClassPackageCreate(BaseModel):
    name: str
    description: str | None = None
    pass_type: ClassPassType
    class_id: int | None = None
    credits_included: int = Field(ge=0)
    price: float = Field(ge=0)
    validity_days: int | None = Field(default=None, gt=0)
    monthly_unlimited: bool = False

    @field_validator("pass_type", mode="before")
    @classmethod
    def normalize_pass_type(cls, value: object) -> ClassPassType:
        if isinstance(value, ClassPassType):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper()
            for pass_type in ClassPassType:
                if pass_type.value == normalized:
                    return pass_type
        raise ValueError(f'Invalid passType "{value}". Expected BUNDLE or MONTHLY.')


class ClassPackage(BaseModel):
    id: int
    name: str
    description: str | None = None
    pass_type: ClassPassType
    class_id: int | None = None
    credits_included: int
    price: float
    validity_days: int | None = None
    monthly_unlimited: bool
    is_active: bool

    class Config:
        from_attributes = True


class PackagePurchase(BaseModel):
    member_id: int


class PurchaseResult(BaseModel):
    pass_id: int
    expires_at: datetime
    remaining_credits: int
    monthly_unlimited: bool


class ActivePass(BaseModel):
    pass_id: int
    package_name: str
    expires_at: datetime
    remaining_credits: int
    monthly_unlimited: bool


class MemberCredits(BaseModel):
    member_id: int
    total_remaining_credits: int
    has_unlimited_pass: bool
    active_passes: list[ActivePass]
