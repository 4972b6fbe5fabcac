# marketplace/models/user.py
"""
Accounts and seller profiles.

Both tables are owned by the auth and profile services; the checkout
pipeline only reads them to resolve buyers, sellers and display names.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey, Text

from marketplace.core.enums import UserRole, VerificationStatus
from marketplace.core.utils import new_object_id, utcnow
from marketplace.database import Base


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    phone = Column(String, unique=True, nullable=True)
    verified = Column(Boolean, default=False, nullable=False)
    role = Column(
        Enum(UserRole, name="userrole", native_enum=False, length=20, values_callable=_enum_values),
        default=UserRole.BUYER,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def is_seller(self) -> bool:
        return self.role == UserRole.SELLER

    def __repr__(self):
        return f"<User {self.id} {self.role.value if self.role else None}>"


class SellerProfile(Base):
    __tablename__ = "seller_profiles"

    id = Column(String(24), primary_key=True, default=new_object_id)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    business_name = Column(String, nullable=False)
    student_name = Column(String, nullable=False)
    business_description = Column(Text, nullable=False, default="")
    phone = Column(String, unique=True, nullable=True)
    verification_status = Column(
        Enum(VerificationStatus, name="verificationstatus", native_enum=False, length=20,
             values_callable=_enum_values),
        default=VerificationStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def display_name(self):
        return self.student_name or self.business_name or None

    def __repr__(self):
        return f"<SellerProfile {self.id} user={self.user_id}>"
