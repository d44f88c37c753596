"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
JSON uses camelCase; Python attributes stay snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ============================================================
# ENUMS
# ============================================================

class University(str, Enum):
    srm_ap = "SRM_AP"
    klu = "KLU"


class Profession(str, Enum):
    student = "Student"
    professional = "Professional"
    graduate = "Graduate"
    other = "Other"


class ExperienceLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    expert = "Expert"


class JobStatus(str, Enum):
    open = "OPEN"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"
    closed = "CLOSED"


class ApplicationStatus(str, Enum):
    pending = "PENDING"
    accepted = "ACCEPTED"
    declined = "DECLINED"


class PricingType(str, Enum):
    fixed = "Fixed"
    hourly = "Hourly"
    per_task = "Per Task"


class ProductCondition(str, Enum):
    new = "New"
    good = "Good"
    used = "Used"


class ProductStatus(str, Enum):
    available = "AVAILABLE"
    reserved = "RESERVED"
    sold = "SOLD"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class SendOtpRequest(CamelModel):
    email: str


class VerifyOtpRequest(CamelModel):
    email: str
    otp: str = Field(..., min_length=1)

    @field_validator("otp", mode="before")
    @classmethod
    def otp_as_string(cls, v: Any) -> Any:
        # mobile clients send the code as a number
        return str(v) if isinstance(v, int) else v


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


# ============================================================
# USER SCHEMAS
# ============================================================

class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    university: Optional[University] = None
    skills: Optional[List[str]] = None
    about: Optional[str] = None
    year_of_study: Optional[str] = None
    profession: Optional[Profession] = None
    profile_image: Optional[str] = None

    @field_validator("profession", mode="before")
    @classmethod
    def blank_profession(cls, v: Any) -> Any:
        return None if isinstance(v, str) and not v.strip() else v


class UniversityVerificationRequest(CamelModel):
    university_email: str = Field(..., min_length=3)


class UniversityVerificationConfirm(CamelModel):
    otp: str = Field(..., min_length=1)

    @field_validator("otp", mode="before")
    @classmethod
    def otp_as_string(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    budget: float = Field(..., ge=0)
    deadline: datetime
    experience_level: ExperienceLevel
    skills_required: List[str] = []


class JobStart(CamelModel):
    freelancer_id: str = Field(..., min_length=1)


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(CamelModel):
    job_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    cover_letter: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    pricing_type: Optional[PricingType] = None
    delivery_days: Optional[int] = Field(None, ge=1)
    skills: List[str] = []
    portfolio_link: Optional[str] = None
    agreement_accepted: bool = False


# ============================================================
# REVIEW SCHEMAS
# ============================================================

class ReviewCreate(CamelModel):
    job_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


# ============================================================
# PRODUCT SCHEMAS
# ============================================================

class ProductCreate(CamelModel):
    # sellerId / universityId / status are never read from the client
    title: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    condition: ProductCondition
    images: List[str] = []


class ProductUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    condition: Optional[ProductCondition] = None
    images: Optional[List[str]] = None


class InterestCreate(CamelModel):
    message: str = Field(..., min_length=1)
    phone: Optional[str] = None


# ============================================================
# WISHLIST SCHEMAS
# ============================================================

class WishlistAdd(CamelModel):
    product_id: str = Field(..., min_length=1)
