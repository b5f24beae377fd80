from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from orgaccess.core.roles import Role
from orgaccess.models.organization import OrganizationPlan, BillingCycle


class Branding(BaseModel):
    logo_url: str = ""
    primary_color: str
    secondary_color: str
    display_name: str = ""


class BrandingUpdate(BaseModel):
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    display_name: Optional[str] = None


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    domain: Optional[str] = None
    branding: Optional[BrandingUpdate] = None


class OrganizationSettingsUpdate(BaseModel):
    """Only these fields are mutable; anything else in the payload is dropped."""
    name: Optional[str] = None
    domain: Optional[str] = None
    branding: Optional[BrandingUpdate] = None


class Organization(BaseModel):
    id: UUID
    name: str
    domain: Optional[str] = None
    plan: OrganizationPlan
    branding: Branding
    billing_customer_id: Optional[str] = None
    max_seats: int
    price_per_seat: float
    billing_cycle: BillingCycle
    current_seats: int
    total_analyses: int
    monthly_analyses: int
    usage_period: str
    created_at: datetime
    updated_at: datetime

    @field_validator("price_per_seat", mode="before")
    @classmethod
    def _decimal_to_float(cls, v):
        return float(v)

    class Config:
        from_attributes = True


class OrganizationSummary(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class MemberSummary(BaseModel):
    id: UUID
    email: str
    name: str
    role: Role
    joined_at: Optional[datetime] = None
    analyses_count: int = 0


class OrganizationAnalytics(BaseModel):
    total_users: int
    total_analyses: int
    monthly_analyses: int
    average_analyses_per_user: int


class OrganizationDetails(BaseModel):
    organization: Organization
    users: List[MemberSummary]
    analytics: OrganizationAnalytics


class MyOrganization(OrganizationDetails):
    user_role: Role


class BillingCosts(BaseModel):
    monthly: float
    yearly: float


class BillingSummary(BaseModel):
    current_seats: int
    max_seats: int
    price_per_seat: float
    billing_cycle: str
    costs: BillingCosts
    next_billing_date: datetime
    billing_customer_id: Optional[str] = None
