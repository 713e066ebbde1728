"""Account domain model for traveller authentication and profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

LANGUAGES = ("en", "sw")
INTERESTS = (
    "wildlife",
    "culture",
    "beach",
    "adventure",
    "food",
    "history",
    "nightlife",
    "shopping",
)
DEFAULT_CURRENCY = "KES"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


@dataclass(slots=True)
class NotificationSettings:
    email: bool = True
    push: bool = True
    sms: bool = False


@dataclass(slots=True)
class Budget:
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(slots=True)
class Preferences:
    language: str = "en"
    currency: str = DEFAULT_CURRENCY
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    interests: List[str] = field(default_factory=list)
    budget: Budget = field(default_factory=Budget)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "currency": self.currency,
            "notifications": {
                "email": self.notifications.email,
                "push": self.notifications.push,
                "sms": self.notifications.sms,
            },
            "interests": list(self.interests),
            "budget": {"min": self.budget.min, "max": self.budget.max},
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Preferences":
        if not data:
            return cls()
        notifications = data.get("notifications") or {}
        budget = data.get("budget") or {}
        return cls(
            language=data.get("language", "en"),
            currency=data.get("currency", DEFAULT_CURRENCY),
            notifications=NotificationSettings(
                email=bool(notifications.get("email", True)),
                push=bool(notifications.get("push", True)),
                sms=bool(notifications.get("sms", False)),
            ),
            interests=list(data.get("interests") or []),
            budget=Budget(min=budget.get("min"), max=budget.get("max")),
        )


@dataclass(slots=True)
class TravelRecord:
    destination: str
    visit_date: Optional[date] = None
    duration: Optional[int] = None
    rating: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destination": self.destination,
            "visitDate": self.visit_date.isoformat() if self.visit_date else None,
            "duration": self.duration,
            "rating": self.rating,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TravelRecord":
        visit_date = data.get("visitDate")
        return cls(
            destination=data["destination"],
            visit_date=date.fromisoformat(visit_date) if visit_date else None,
            duration=data.get("duration"),
            rating=data.get("rating"),
        )


@dataclass(slots=True)
class EmergencyContact:
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "phone": self.phone, "relationship": self.relationship}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["EmergencyContact"]:
        if not data:
            return None
        return cls(
            name=data.get("name"),
            phone=data.get("phone"),
            relationship=data.get("relationship"),
        )


@dataclass(slots=True)
class Account:
    """
    Traveller account.

    ``password_hash`` is only populated when the store is asked for the secret;
    token fields hold SHA-256 verifiers, never the plaintext sent by email.
    """

    id: int
    email: str
    first_name: str
    last_name: str
    created_at: datetime
    updated_at: datetime
    password_hash: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    date_of_birth: Optional[date] = None
    profile_image: str = ""
    role: Role = Role.USER
    is_email_verified: bool = False
    email_verification_token_hash: Optional[str] = None
    email_verification_expires_at: Optional[datetime] = None
    password_reset_token_hash: Optional[str] = None
    password_reset_expires_at: Optional[datetime] = None
    login_attempts: int = 0
    lock_until: Optional[datetime] = None
    preferences: Preferences = field(default_factory=Preferences)
    travel_history: List[TravelRecord] = field(default_factory=list)
    emergency_contact: Optional[EmergencyContact] = None
    is_active: bool = True
    last_login: Optional[datetime] = None

    def is_locked(self, now: datetime) -> bool:
        return self.lock_until is not None and self.lock_until > now

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "nationality": self.nationality,
            "dateOfBirth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "profileImage": self.profile_image,
            "role": self.role.value,
            "isEmailVerified": self.is_email_verified,
            "preferences": self.preferences.to_dict(),
            "travelHistory": [record.to_dict() for record in self.travel_history],
            "emergencyContact": self.emergency_contact.to_dict() if self.emergency_contact else None,
            "isActive": self.is_active,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def __repr__(self) -> str:
        return f"<Account id={self.id} email={self.email} role={self.role.value} verified={self.is_email_verified}>"
