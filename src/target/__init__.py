"""Goal-tracker store."""

from .base import TargetStore
from .beeminder import BeeminderClient

__all__ = ["TargetStore", "BeeminderClient"]
