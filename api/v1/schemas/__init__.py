"""Re-export individual schema modules for easy imports."""

from .user import SignupIn, LoginIn, UserOut
from .nutrition import AnalysisOut, LedgerOut, MealSlotOut
from .reminder import ReminderIn, ReminderOut, ReminderEnvelope
from .dashboard import ActivityOut, DashboardOut
from .message import ChatMessageIn, MessageOut

__all__ = [
    "SignupIn",
    "LoginIn",
    "UserOut",
    "AnalysisOut",
    "LedgerOut",
    "MealSlotOut",
    "ReminderIn",
    "ReminderOut",
    "ReminderEnvelope",
    "ActivityOut",
    "DashboardOut",
    "ChatMessageIn",
    "MessageOut",
]
