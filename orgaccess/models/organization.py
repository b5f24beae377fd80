from sqlalchemy import Column, String, DateTime, Integer, Numeric, Uuid, Enum as SQLEnum
import uuid
import enum
from decimal import Decimal
from orgaccess.db.session import Base
from orgaccess.utils.dates import utcnow, period_tag


class OrganizationPlan(str, enum.Enum):
    ENTERPRISE = "enterprise"


class BillingCycle(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


DEFAULT_PRIMARY_COLOR = "#4f46e5"
DEFAULT_SECONDARY_COLOR = "#6b7280"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    domain = Column(String(255), nullable=True, unique=True)  # null allowed many times
    plan = Column(
        SQLEnum(OrganizationPlan, name="organization_plan", values_callable=_enum_values),
        default=OrganizationPlan.ENTERPRISE,
        nullable=False,
    )

    # Branding
    logo_url = Column(String, nullable=False, default="")
    primary_color = Column(String(32), nullable=False, default=DEFAULT_PRIMARY_COLOR)
    secondary_color = Column(String(32), nullable=False, default=DEFAULT_SECONDARY_COLOR)
    display_name = Column(String(255), nullable=False, default="")

    # Billing (payment processing itself is external)
    billing_customer_id = Column(String, nullable=True)
    max_seats = Column(Integer, nullable=False, default=50)
    price_per_seat = Column(Numeric(10, 2), nullable=False, default=Decimal("30.00"))
    billing_cycle = Column(
        SQLEnum(BillingCycle, name="billing_cycle", values_callable=_enum_values),
        default=BillingCycle.MONTHLY,
        nullable=False,
    )

    # Usage counters
    current_seats = Column(Integer, nullable=False, default=0)
    total_analyses = Column(Integer, nullable=False, default=0)
    monthly_analyses = Column(Integer, nullable=False, default=0)
    usage_period = Column(String(7), nullable=False, default=lambda: period_tag(utcnow()))  # YYYY-MM
    usage_last_reset_at = Column(DateTime, nullable=False, default=utcnow)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)  # bumped by settings changes only

    @property
    def branding(self) -> dict:
        return {
            "logo_url": self.logo_url,
            "primary_color": self.primary_color,
            "secondary_color": self.secondary_color,
            "display_name": self.display_name,
        }
