"""Request bodies for the HTTP API."""

from datetime import date
from typing import Optional

from pydantic import BaseModel

from .habits.models import Category, HabitType


class Credentials(BaseModel):
    email: str
    password: str


class SignupRequest(Credentials):
    name: str


class PasswordResetRequest(BaseModel):
    email: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[str] = None
    new_password: Optional[str] = None


class TaskCreate(BaseModel):
    name: str
    start_date: date
    end_date: date
    type: HabitType = HabitType.HABIT
    category: Category = Category.OTHER
    why: str = ""
    penalty: str = ""


class MarkRequest(BaseModel):
    """Completion of a habit; day defaults to today."""

    remark: str = "Marked from Calendar"
    day: Optional[date] = None


class JournalCreate(BaseModel):
    subject: str = ""
    content: str
    mood: str = ""
    images: list[str] = []


class TodoCreate(BaseModel):
    text: str
    due_date: Optional[str] = None


class ExpenseCreate(BaseModel):
    amount: float
    category: str = "Other"
    description: str = ""
    day: Optional[date] = None


class ImportRequest(BaseModel):
    """A backup as produced by /api/export."""

    data: str
