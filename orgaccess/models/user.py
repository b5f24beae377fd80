from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint, Uuid, Enum as SQLEnum
import uuid
import enum
from orgaccess.db.session import Base
from orgaccess.core.roles import Role
from orgaccess.utils.dates import utcnow


class PlanTier(str, enum.Enum):
    FREE = "free"
    STANDARD = "standard"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    """
    A person known to the identity provider.
    The organization_id / role / joined_at triple is the user's membership;
    a user belongs to at most one organization.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    external_id = Column(String(255), nullable=False, unique=True, index=True)  # identity provider subject
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    plan = Column(
        SQLEnum(PlanTier, name="plan_tier", values_callable=_enum_values),
        default=PlanTier.FREE,
        nullable=False,
    )

    # Membership
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=True, index=True)
    role = Column(SQLEnum(Role, name="member_role", values_callable=_enum_values), nullable=True)
    joined_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(organization_id IS NULL AND role IS NULL) OR "
            "(organization_id IS NOT NULL AND role IS NOT NULL)",
            name="ck_users_membership_complete",
        ),
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
