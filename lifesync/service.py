"""Application service: the signed-in user's state and every user action."""

import logging
import uuid
from datetime import date
from typing import Awaitable, Callable, Optional

from .assets import AssetHost
from .clock import SystemClock
from .errors import (
    AlreadyCompletedError,
    AuthError,
    BackupImportError,
    CollaboratorError,
    LockedDateError,
    ValidationError,
    WriteConflictError,
)
from .events import Notifier
from .habits import daystatus
from .habits.ledger import CompletionLedger
from .habits.models import (
    Category,
    CompletionProof,
    Expense,
    Habit,
    HabitType,
    JournalEntry,
    Preferences,
    Todo,
    UserDocument,
    WorkingSet,
)
from .identity import IdentityProvider, Session, avatar_url
from .sync.cache import LocalCache
from .sync.reconciler import SyncReconciler
from .sync.store import EXPENSES, JOURNAL, PROFILE, TASKS, TODOS, DocumentStore

logger = logging.getLogger(__name__)

SIGNUP_MESSAGES = {
    "email-already-in-use": "Email already in use.",
    "weak-password": "Password is too weak.",
}


class LifeSync:
    """
    Holds one user's working set and performs their actions.

    Writes go straight to the document store; the working set only changes
    when the store's snapshots come back through the reconciler. Failures
    are reported as toasts and the action returns False; nothing here
    raises to the caller.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        store: DocumentStore,
        cache: LocalCache,
        assets: Optional[AssetHost] = None,
        clock: Optional[SystemClock] = None,
        notifier: Optional[Notifier] = None,
        lock_window_days: int = daystatus.DEFAULT_LOCK_WINDOW,
    ):
        self.identity = identity
        self.store = store
        self.assets = assets
        self.clock = clock or SystemClock()
        self.notifier = notifier or Notifier()
        self.lock_window_days = lock_window_days
        self.reconciler = SyncReconciler(store, cache)
        self.ledger = CompletionLedger(store, self.notifier)
        self.session: Optional[Session] = None
        self._unsubscribe_identity = identity.on_session_change(self._on_session_change)

    @property
    def state(self) -> WorkingSet:
        return self.reconciler.state

    @property
    def user(self) -> Optional[dict]:
        """Signed-in user merged with the stored profile."""
        if self.session is None:
            return None
        profile = self.state.profile
        return {
            "id": self.session.uid,
            "email": self.session.email,
            "name": self.session.display_name or "User",
            "avatar": self.session.photo_url or avatar_url(self.session.uid),
            "bio": profile.bio or "New Member",
            "gender": profile.gender or "Not Specified",
            "dob": profile.dob or "",
        }

    async def _on_session_change(self, session: Optional[Session]):
        if session is not None:
            self.session = session
            await self.reconciler.start(session.uid)
        else:
            self.session = None
            self.reconciler.stop()

    async def close(self):
        """Detach from the identity provider and end any session."""
        self._unsubscribe_identity()
        self.session = None
        self.reconciler.stop()

    # --- Feedback ---

    def play(self, cue: str):
        if self.state.settings.sound_enabled:
            self.notifier.sound(cue)

    async def _run(
        self,
        action: Callable[[], Awaitable],
        failure: str,
        success: Optional[str] = None,
        cue: str = "click",
        kind: str = "success",
    ) -> bool:
        """
        Run an action, reporting the outcome to the user.

        Validation errors are shown as they are; collaborator failures are
        logged and shown as `failure`. Nothing is retried.
        """
        try:
            await action()
        except ValidationError as e:
            logger.info(f"Rejected: {e}")
            self.play("error")
            self.notifier.toast(str(e), "error")
            return False
        except CollaboratorError as e:
            logger.error(f"{failure} {e}")
            self.play("error")
            self.notifier.toast(failure, "error")
            return False

        if success:
            self.play(cue)
            self.notifier.toast(success, kind)
        return True

    def _require_session(self) -> Session:
        if self.session is None:
            raise ValidationError("You need to be signed in.")
        return self.session

    # --- Auth ---

    async def login(self, email: str, password: str) -> bool:
        try:
            await self.identity.sign_in(email, password)
        except AuthError as e:
            logger.error(f"Login error: {e}")
            self.notifier.toast("Invalid email or password.", "error")
            return False

        self.play("success")
        self.notifier.toast("Welcome back!", "success")
        return True

    async def signup(self, email: str, password: str, name: str) -> bool:
        try:
            session = await self.identity.sign_up(email, password, name)
        except AuthError as e:
            logger.error(f"Signup error: {e}")
            self.notifier.toast(SIGNUP_MESSAGES.get(e.code, str(e) or "Signup failed."), "error")
            return False

        initial = UserDocument()
        initial.profile.bio = "New Member"
        try:
            await self.store.write(
                session.uid, PROFILE, session.uid, {"id": session.uid, **initial.to_document()}
            )
        except CollaboratorError as e:
            logger.error(f"Initial profile document error: {e}")
        return True

    async def logout(self) -> bool:
        try:
            await self.identity.sign_out()
        except AuthError as e:
            logger.error(f"Logout error: {e}")
            return False

        self.play("click")
        self.notifier.toast("Logged out successfully", "info")
        return True

    async def reset_password(self, email: str) -> bool:
        try:
            await self.identity.send_password_reset(email)
        except AuthError as e:
            logger.error(f"Reset password error: {e}")
            self.notifier.toast(str(e) or "Failed to send reset email.", "error")
            return False
        return True

    async def update_user(
        self,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
        bio: Optional[str] = None,
        gender: Optional[str] = None,
        dob: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> bool:
        async def action():
            session = self._require_session()
            if name or avatar:
                self.session = await self.identity.update_profile(name, avatar)
            if new_password:
                await self.identity.update_password(new_password)
                self.notifier.toast("Password updated successfully.", "success")

            changes = {"bio": bio, "gender": gender, "dob": dob}
            profile = self.state.profile.model_copy(
                update={k: v for k, v in changes.items() if v is not None}
            )
            await self.store.update(
                session.uid, PROFILE, session.uid, {"profile": profile.to_document()}
            )

        return await self._run(
            action, "Failed to update profile.", "Profile updated.", cue="success"
        )

    # --- Habits ---

    async def add_task(
        self,
        name: str,
        start_date: date,
        end_date: date,
        type: HabitType = HabitType.HABIT,
        category: Category = Category.OTHER,
        why: str = "",
        penalty: str = "",
    ) -> Optional[Habit]:
        """Create a habit; returns it once written, None on failure."""
        created = {}

        async def action():
            session = self._require_session()
            if not name.strip():
                raise ValidationError("Habit name is required.")
            if end_date < start_date:
                raise ValidationError("End date must not be before start date.")

            habit = Habit(
                id=str(uuid.uuid4()),
                user_id=session.uid,
                name=name.strip(),
                type=type,
                category=category,
                why=why,
                penalty=penalty,
                start_date=start_date,
                end_date=end_date,
                created_at=self.clock.now(),
            )
            await self.store.write(session.uid, TASKS, habit.id, habit.to_document())
            created["habit"] = habit

        ok = await self._run(
            action, "Failed to save task to cloud.", "Task created successfully!", cue="success"
        )
        return created["habit"] if ok else None

    def check_markable(self, habit: Habit, day: date):
        """
        Reject days that may not be marked for habit.

        Raises:
            LockedDateError: Future day, or older than the marking window
            AlreadyCompletedError: Habit already completed on day
        """
        today = self.clock.today()
        if day > today:
            raise LockedDateError("Future days can't be marked yet.")
        if daystatus.is_locked(day, today, self.lock_window_days):
            raise LockedDateError(
                f"Days older than {self.lock_window_days} days are locked."
            )
        if habit.is_completed_on(day):
            raise AlreadyCompletedError(f"{habit.name} is already done for {day.isoformat()}.")

    async def mark_task(
        self,
        task_id: str,
        remark: str,
        day: Optional[date] = None,
        image: Optional[tuple[bytes, str, str]] = None,
    ) -> bool:
        """
        Mark a habit complete for a day (today by default).

        Args:
            task_id: Habit to mark
            remark: How it went
            day: Calendar day being attested
            image: Optional (data, filename, content_type) proof photo
        """

        async def action():
            session = self._require_session()
            habit = self.state.find_task(task_id)
            if habit is None:
                raise ValidationError("Habit not found.")
            if not remark.strip():
                raise ValidationError("A remark is required.")
            marked_day = day or self.clock.today()
            self.check_markable(habit, marked_day)

            image_url = None
            if image is not None:
                if self.assets is None:
                    raise ValidationError("Image upload is not configured.")
                image_url = await self.assets.upload(*image)

            proof = CompletionProof(
                id=str(uuid.uuid4()),
                task_id=habit.id,
                date=marked_day,
                remark=remark.strip(),
                image_url=image_url,
                timestamp=self.clock.now(),
            )
            try:
                await self.ledger.record_completion(session.uid, habit, proof)
            except WriteConflictError as e:
                raise AlreadyCompletedError(
                    f"{habit.name} was updated elsewhere, try again."
                ) from e

        return await self._run(
            action, "Failed to mark task.", "Task completed! Keep it up!", cue="sparkle"
        )

    # --- Journal ---

    async def add_journal(
        self,
        subject: str,
        content: str,
        mood: str = "",
        images: Optional[list[str]] = None,
    ) -> bool:
        async def action():
            session = self._require_session()
            if not content.strip():
                raise ValidationError("Journal entry can't be empty.")
            now = self.clock.now()
            entry = JournalEntry(
                id=str(uuid.uuid4()),
                user_id=session.uid,
                date=now.isoformat(),
                subject=subject,
                content=content,
                mood=mood,
                images=images or [],
                created_at=now,
            )
            await self.store.write(session.uid, JOURNAL, entry.id, entry.to_document())

        return await self._run(action, "Failed to save journal entry.", "Journal entry saved.", cue="success")

    async def update_journal(self, entry: JournalEntry) -> bool:
        async def action():
            session = self._require_session()
            await self.store.update(session.uid, JOURNAL, entry.id, entry.to_document())

        return await self._run(action, "Failed to update journal.", "Journal updated.")

    async def delete_journal(self, entry_id: str) -> bool:
        async def action():
            session = self._require_session()
            await self.store.delete(session.uid, JOURNAL, entry_id)

        return await self._run(action, "Failed to delete entry.", "Entry deleted.", kind="info")

    # --- Todos ---

    async def add_todo(self, text: str, due_date: Optional[str] = None) -> bool:
        async def action():
            session = self._require_session()
            if not text.strip():
                raise ValidationError("To-Do text is required.")
            todo = Todo(
                id=str(uuid.uuid4()),
                user_id=session.uid,
                text=text.strip(),
                due_date=due_date,
                created_at=self.clock.now(),
            )
            await self.store.write(session.uid, TODOS, todo.id, todo.to_document())

        return await self._run(action, "Failed to add To-Do.", "To-Do added.")

    async def toggle_todo(self, todo_id: str) -> bool:
        async def action():
            session = self._require_session()
            todo = next((t for t in self.state.todos if t.id == todo_id), None)
            if todo is None:
                raise ValidationError("To-Do not found.")
            await self.store.update(session.uid, TODOS, todo_id, {"completed": not todo.completed})
            self.play("click")

        return await self._run(action, "Failed to update To-Do.")

    async def delete_todo(self, todo_id: str) -> bool:
        async def action():
            session = self._require_session()
            await self.store.delete(session.uid, TODOS, todo_id)

        return await self._run(action, "Failed to remove To-Do.", "Task removed.", kind="info")

    # --- Expenses ---

    async def add_expense(
        self, amount: float, category: str, description: str = "", day: Optional[date] = None
    ) -> bool:
        async def action():
            session = self._require_session()
            if amount <= 0:
                raise ValidationError("Amount must be positive.")
            expense = Expense(
                id=str(uuid.uuid4()),
                user_id=session.uid,
                amount=amount,
                category=category,
                description=description,
                date=(day or self.clock.today()).isoformat(),
            )
            await self.store.write(session.uid, EXPENSES, expense.id, expense.to_document())

        return await self._run(action, "Failed to record expense.", "Expense recorded.", cue="success")

    async def delete_expense(self, expense_id: str) -> bool:
        async def action():
            session = self._require_session()
            await self.store.delete(session.uid, EXPENSES, expense_id)

        return await self._run(action, "Failed to remove expense.", "Expense removed.", kind="info")

    # --- Settings and backups ---

    async def toggle_sound(self) -> bool:
        current = self.state.settings
        return await self._save_settings(current.model_copy(update={"sound_enabled": not current.sound_enabled}))

    async def toggle_dark_mode(self) -> bool:
        current = self.state.settings
        return await self._save_settings(current.model_copy(update={"dark_mode": not current.dark_mode}))

    async def _save_settings(self, preferences: Preferences) -> bool:
        async def action():
            session = self._require_session()
            await self.store.update(
                session.uid, PROFILE, session.uid, {"settings": preferences.to_document()}
            )

        return await self._run(action, "Failed to save settings.")

    def reset_data(self) -> bool:
        """Clear the local backup; the document store is left untouched."""
        if self.session is None:
            return False
        self.reconciler.reset_local()
        self.play("click")
        self.notifier.toast("Local backup cleared.", "info")
        return True

    def export_data(self) -> str:
        return self.reconciler.export_data(self.user)

    def import_data(self, text: str) -> bool:
        try:
            self.reconciler.import_data(text)
        except BackupImportError as e:
            logger.error(f"Import failed: {e}")
            self.play("error")
            self.notifier.toast("Import failed: Invalid file.", "error")
            return False

        self.play("success")
        self.notifier.toast("Data imported to view.", "success")
        return True

    # --- Views ---

    def day_status(self, day: date) -> daystatus.DayStatus:
        return daystatus.resolve_day_status(day, self.state.tasks, self.clock.today())

    def is_locked(self, day: date) -> bool:
        return daystatus.is_locked(day, self.clock.today(), self.lock_window_days)

    def calendar(self, year: int, month: int) -> list[daystatus.DaySummary]:
        return daystatus.month_statuses(
            year, month, self.state.tasks, self.clock.today(), self.lock_window_days
        )

    def dashboard(self) -> dict:
        """Today's progress, broken streaks, missed days and the top streaks."""
        today = self.clock.today()
        tasks = self.state.tasks
        done = daystatus.done_today(tasks, today)

        missed = []
        for habit in tasks:
            days = daystatus.missed_dates(habit, today)
            if days:
                missed.append(
                    {"id": habit.id, "name": habit.name, "dates": [day.isoformat() for day in days]}
                )

        return {
            "date": today.isoformat(),
            "habits_done_today": len(done),
            "habits_total": len(tasks),
            "progress_percent": round(len(done) / len(tasks) * 100) if tasks else 0,
            "all_done": bool(tasks) and len(done) == len(tasks),
            "pending_todos": sum(1 for todo in self.state.todos if not todo.completed),
            "spent_today": sum(e.amount for e in self.state.expenses if e.date.startswith(today.isoformat())),
            "journal_today": sum(1 for j in self.state.journal if j.date.startswith(today.isoformat())),
            "broken_streaks": [habit.id for habit in daystatus.broken_streaks(tasks, today)],
            "missed": missed,
            "top_streaks": [
                {"id": habit.id, "name": habit.name, "streaks": habit.streaks}
                for habit in daystatus.top_streaks(tasks)
            ],
            "weekly": [
                {"date": day.isoformat(), "count": sum(1 for t in tasks if t.is_completed_on(day))}
                for day, _ in daystatus.weekly_completion(tasks, today)
            ],
        }

    def proof_wall(
        self,
        task_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[CompletionProof]:
        """
        Proofs newest first, optionally for one habit and a day range.

        The range is inclusive; an open start reaches back to the first proof
        and an open end runs up to today.
        """
        proofs = self.state.proofs_for(task_id) if task_id else list(self.state.proofs)
        if start or end:
            low = start or date.min
            high = end or self.clock.today()
            proofs = [proof for proof in proofs if low <= proof.date <= high]
        return sorted(proofs, key=lambda proof: (proof.date, proof.timestamp), reverse=True)

    def task_detail(self, task_id: str) -> Optional[dict]:
        """A habit with its proofs and the days missed over the last week."""
        habit = self.state.find_task(task_id)
        if habit is None:
            return None
        return {
            "task": habit.to_document(),
            "proofs": [proof.to_document() for proof in self.proof_wall(task_id)],
            "missed": [day.isoformat() for day in daystatus.missed_dates(habit, self.clock.today())],
        }

    def insights(self) -> dict:
        """Completion rate over 30 days, weekly percentages and weekday totals."""
        today = self.clock.today()
        tasks = self.state.tasks
        rate = daystatus.completion_rate(tasks, today)
        return {
            "total_tasks": len(tasks),
            "average_streak": daystatus.average_streak(tasks),
            "completion_rate": rate.percent,
            "completed_30": rate.completed,
            "skipped_30": rate.skipped,
            "weekly": [
                {"date": day.isoformat(), "completion": percent}
                for day, percent in daystatus.weekly_completion(tasks, today)
            ],
            "weekday_totals": daystatus.weekday_totals(tasks),
        }
