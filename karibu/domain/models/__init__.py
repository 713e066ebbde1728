"""Domain models for the Karibu Kenya application."""

from .account import (
    INTERESTS,
    LANGUAGES,
    Account,
    Budget,
    EmergencyContact,
    NotificationSettings,
    Preferences,
    Role,
    TravelRecord,
)
from .session import TokenPair
from .token import IssuedToken, TokenPurpose

__all__ = [
    "Account",
    "Budget",
    "EmergencyContact",
    "INTERESTS",
    "IssuedToken",
    "LANGUAGES",
    "NotificationSettings",
    "Preferences",
    "Role",
    "TokenPair",
    "TokenPurpose",
    "TravelRecord",
]
