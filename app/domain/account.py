"""Domain models for accounts, credentials and staff profiles."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import EmailStr, Field

from app.core.permissions import Role
from app.domain.base import DocumentModel, RequestModel


class ContactPreference(str, Enum):
    EMAIL = "email"
    PHONE = "phone"


class Account(DocumentModel):
    """A person known to the studio.

    Attributes:
        account_id: Sequential code prefixed by the role at creation (U/I/M)
        first_name: Given name
        last_name: Family name
        email: Unique email address, also the login name
        phone: Contact phone number
        address: Postal address
        preferred_contact: How the studio should reach the person
        role: Current role; authoritative for authorization
        created_at: Creation timestamp (drives the reports)
        updated_at: Last modification timestamp
    """
    account_id: str
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    address: str
    preferred_contact: ContactPreference = ContactPreference.EMAIL
    role: Role = Role.CLIENT
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def welcome_message(self) -> str:
        return f"Welcome to Yoga'Hom! Your {str(self.role).lower()} ID is {self.account_id}."

    def summary(self) -> dict:
        return {
            "accountId": self.account_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "role": self.role,
        }


class Credential(DocumentModel):
    """Salted password hash for one account. Never embedded in Account."""
    account_id: str
    password_hash: str
    last_changed: datetime = Field(default_factory=datetime.utcnow)
    is_active: bool = True


class InstructorProfile(DocumentModel):
    """Instructor extension of an Account, keyed by the same account id."""
    instructor_id: str
    account_id: str
    class_ids: List[str] = Field(default_factory=list)
    specialties: List[str] = Field(default_factory=list)
    hire_date: datetime = Field(default_factory=datetime.utcnow)
    is_active: bool = True


class ManagerProfile(DocumentModel):
    """Manager extension of an Account."""
    manager_id: str
    account_id: str
    department: str = "Operations"
    hire_date: datetime = Field(default_factory=datetime.utcnow)
    is_active: bool = True


# -----------------
# REQUEST BODIES
# -----------------

class AccountFields(RequestModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    preferred_contact: ContactPreference = ContactPreference.EMAIL


class RegisterRequest(AccountFields):
    """Self-service (or manager-driven) registration with a password."""
    role: Role = Role.CLIENT
    password: str

    class Config:
        json_schema_extra = {
            "example": {
                "firstName": "Maya",
                "lastName": "Lind",
                "email": "maya@example.com",
                "phone": "555-0100",
                "address": "1 Lotus Way",
                "preferredContact": "email",
                "role": "Client",
                "password": "namaste1"
            }
        }


class AccountCreateRequest(AccountFields):
    """Manager-created account; the password is optional."""
    role: Role = Role.CLIENT
    password: Optional[str] = None


class AccountUpdateRequest(RequestModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    preferred_contact: Optional[ContactPreference] = None


class LoginRequest(RequestModel):
    email: EmailStr
    password: str


class ChangePasswordRequest(RequestModel):
    current_password: str
    new_password: str


class InstructorPromotionRequest(RequestModel):
    account_id: str
    specialties: List[str] = Field(default_factory=list)
    hire_date: Optional[datetime] = None


class InstructorUpdateRequest(RequestModel):
    specialties: Optional[List[str]] = None
    hire_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class ManagerPromotionRequest(RequestModel):
    account_id: str
    department: Optional[str] = None


class ManagerUpdateRequest(RequestModel):
    department: Optional[str] = None
    is_active: Optional[bool] = None
