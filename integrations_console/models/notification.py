"""User-visible notification model."""

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field
from enum import Enum


class NotificationVariant(str, Enum):
    """How prominently the console shows a notification."""
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """A toast: where every operation outcome ends up."""
    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    code: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
