"""Recording habit completions and their proofs."""

import logging
from typing import Optional

from ..errors import CollaboratorError
from ..events import COMPLETION, Notifier
from ..sync.store import PROOFS, TASKS, DocumentStore
from .models import CompletionProof, Habit
from .streaks import StreakCalculator

logger = logging.getLogger(__name__)


class CompletionLedger:
    """Writes completions through to the document store."""

    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier,
        calculator: Optional[StreakCalculator] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.calculator = calculator or StreakCalculator()

    async def record_completion(
        self, user_id: str, habit: Habit, proof: CompletionProof
    ) -> Habit:
        """
        Record that habit was completed on proof.date.

        Appends the day to completed_dates (no duplicate check; callers
        guard against marking a day twice), advances the streak and writes
        the proof under its own id. The in-memory habit is left as it is;
        the store's next snapshot carries the change.

        The proof is written first. The habit update then only applies if
        the stored completed_dates still match what the streak was computed
        from; if it fails (a racing second mark gets WriteConflictError)
        the proof is deleted again, so a failed completion leaves neither.

        Args:
            user_id: Owner of the habit
            habit: Habit as currently held in memory
            proof: Attestation for the completed day

        Returns:
            Copy of the habit with the new completion applied
        """
        if proof.task_id != habit.id:
            raise ValueError(f"Proof {proof.id} is for {proof.task_id}, not {habit.id}")

        fields = self.calculator.updated_fields(habit, proof.date)
        expected = {"completedDates": habit.stored_completed_dates}

        await self.store.write(user_id, PROOFS, proof.id, proof.to_document())
        try:
            await self.store.update(user_id, TASKS, habit.id, fields, expected=expected)
        except CollaboratorError:
            await self._discard_proof(user_id, proof)
            raise

        updated = habit.model_copy(
            update={
                "completed_dates": [*habit.completed_dates, proof.date],
                "streaks": fields["streaks"],
                "max_streaks": fields["maxStreaks"],
            }
        )
        logger.info(
            f"Recorded {habit.name} on {proof.date.isoformat()}: "
            f"streak {updated.streaks} (best {updated.max_streaks})"
        )
        self.notifier.emit(COMPLETION, habit=updated, proof=proof)
        return updated

    async def _discard_proof(self, user_id: str, proof: CompletionProof):
        try:
            await self.store.delete(user_id, PROOFS, proof.id)
        except CollaboratorError as e:
            logger.error(f"Could not remove proof {proof.id} after failed update: {e}")
