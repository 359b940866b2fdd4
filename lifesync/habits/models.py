"""Document models for habits, proofs and the rest of a user's working set."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator
from pydantic.alias_generators import to_camel


def parse_day(value) -> date:
    """
    Coerce a calendar day from a date, datetime or ISO string.

    Stored documents sometimes carry full ISO timestamps where a day is
    expected (e.g. "2024-03-01T09:30:00.000Z"); only the date part counts.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise ValueError(f"Not a calendar day: {value!r}")


class Document(BaseModel):
    """Base for JSON documents stored with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Serialize for the document store / cache."""
        return self.model_dump(mode="json", by_alias=True)


class HabitType(str, Enum):
    HABIT = "Habit"
    GOAL = "Goal"


class Category(str, Enum):
    WEALTH = "Wealth"
    HEALTH = "Health"
    PERSONAL = "Personal"
    CAREER = "Career"
    OTHER = "Other"


class Habit(Document):
    """A habit or goal tracked for completion over a date range."""

    id: str
    user_id: str = ""
    name: str
    type: HabitType = HabitType.HABIT
    why: str = ""
    penalty: str = ""
    category: Category = Category.OTHER
    start_date: date
    end_date: date
    created_at: Optional[datetime] = None
    completed_dates: list[date] = Field(default_factory=list)
    streaks: int = 0
    max_streaks: int = 0

    _stored_dates: Optional[list] = PrivateAttr(default=None)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _coerce_day(cls, value):
        return parse_day(value)

    @field_validator("completed_dates", mode="before")
    @classmethod
    def _coerce_days(cls, value):
        return [parse_day(v) for v in value or []]

    @model_validator(mode="wrap")
    @classmethod
    def _keep_stored_dates(cls, data, handler):
        habit = handler(data)
        if isinstance(data, dict):
            raw = data.get("completedDates", data.get("completed_dates"))
            if isinstance(raw, list):
                habit._stored_dates = list(raw)
        return habit

    @property
    def stored_completed_dates(self) -> list:
        """
        completedDates exactly as the stored document holds them.

        Conditional updates compare against the stored values, which may be
        full timestamps rather than plain days.
        """
        raw = self._stored_dates
        if raw is not None and [parse_day(v) for v in raw] == self.completed_dates:
            return [v if isinstance(v, str) else parse_day(v).isoformat() for v in raw]
        return [day.isoformat() for day in self.completed_dates]

    def is_active_on(self, day: date) -> bool:
        """Whether day falls inside [start_date, end_date]."""
        return self.start_date <= day <= self.end_date

    def is_completed_on(self, day: date) -> bool:
        return day in self.completed_dates

    @property
    def last_completed(self) -> Optional[date]:
        """Most recently appended completion, if any."""
        return self.completed_dates[-1] if self.completed_dates else None


class CompletionProof(Document):
    """Attestation that a habit was done on a calendar day."""

    id: str
    task_id: str
    date: date
    remark: str = ""
    image_url: Optional[str] = None
    timestamp: datetime

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_day(cls, value):
        return parse_day(value)


class JournalEntry(Document):
    id: str
    user_id: str = ""
    date: str
    subject: str = ""
    content: str = ""
    mood: str = ""
    images: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class Todo(Document):
    id: str
    user_id: str = ""
    text: str
    completed: bool = False
    due_date: Optional[str] = None
    created_at: Optional[datetime] = None


class Expense(Document):
    id: str
    user_id: str = ""
    amount: float
    category: str = "Other"
    description: str = ""
    date: str


class Preferences(Document):
    """Per-user UI preferences."""

    sound_enabled: bool = True
    dark_mode: bool = True


class Profile(Document):
    """Profile fields kept in the document store rather than the identity provider."""

    bio: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[str] = None


class UserDocument(Document):
    """The single per-user document holding preferences and profile."""

    settings: Preferences = Field(default_factory=Preferences)
    profile: Profile = Field(default_factory=Profile)


class WorkingSet(Document):
    """Everything the engine holds in memory for the signed-in user."""

    tasks: list[Habit] = Field(default_factory=list)
    proofs: list[CompletionProof] = Field(default_factory=list)
    journal: list[JournalEntry] = Field(default_factory=list)
    todos: list[Todo] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    settings: Preferences = Field(default_factory=Preferences)
    profile: Profile = Field(default_factory=Profile)

    def find_task(self, task_id: str) -> Optional[Habit]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def proofs_for(self, task_id: str) -> list[CompletionProof]:
        return [proof for proof in self.proofs if proof.task_id == task_id]
