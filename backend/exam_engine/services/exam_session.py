"""
One student's attempt at one exam.

Owns the working question list, the answer ledger, the review flags and the
countdown. Nothing here is shared between sessions. The only awaits are the
persistence call on submit and the sleep of the clock loop; everything else
runs synchronously on the event loop, so flipping ``status`` before the first
await is enough to keep a manual submit and the auto-submit from both going
through.
"""
import asyncio
import enum
import logging
import random
from datetime import datetime
from typing import List, Optional

from ..config import SUBMIT_RETRIES, SUBMIT_TIMEOUT
from ..errors import ConfigurationFailure, LoadFailure, SessionStateError, SubmissionTransportFailure
from ..schemas.attempt_schema import AttemptResult, SubmitOutcome, SubmitStatus, result_from_record
from ..schemas.exam_schema import ExamConfig
from ..schemas.question_schema import Question
from ..schemas.user_schema import StudentContext
from .answer_ledger import AnswerLedger, ReviewFlags, answer_status
from .attempt_gateway import AttemptGateway
from .countdown import CountdownController, CountdownEvent, format_remaining
from .exam_service import check_window
from .grading_service import score_attempt
from .section_filter import filter_by_sections, validate_custom_sections, validate_subject_selection
from .shuffle_service import shuffle_mode_for, shuffle_questions
from .snapshot_store import LocalSnapshotStore

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUBMITTING = "submitting"
    SUBMIT_FAILED = "submit_failed"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"


class ExamSession:

    def __init__(
        self,
        exam: ExamConfig,
        questions: List[Question],
        student: StudentContext,
        gateway: AttemptGateway,
        snapshots: Optional[LocalSnapshotStore] = None,
        rng: Optional[random.Random] = None,
        submit_retries: int = SUBMIT_RETRIES,
        submit_timeout: float = SUBMIT_TIMEOUT,
        retry_delay: float = 0.5,
    ):
        if not questions:
            raise LoadFailure("cannot start an exam without questions")
        self.exam = exam
        self.student = student
        self.all_questions: List[Question] = list(questions)
        self.gateway = gateway
        self.snapshots = snapshots
        self.rng = rng or random.Random()
        self.submit_retries = max(0, submit_retries)
        self.submit_timeout = submit_timeout
        self.retry_delay = retry_delay

        self.questions: List[Question] = []
        self.sections: Optional[List[str]] = None
        self.ledger = AnswerLedger()
        self.flags = ReviewFlags()
        self.countdown: Optional[CountdownController] = None
        self.status = SessionStatus.NOT_STARTED
        self.current_index = 0
        self.result: Optional[AttemptResult] = None
        self.outcome: Optional[SubmitOutcome] = None
        self.last_error: Optional[str] = None
        self._pending_events: List[CountdownEvent] = []
        self._question_ids = set()

    # --- lifecycle -----------------------------------------------------------

    def start(
        self,
        sections: Optional[List[str]] = None,
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[CountdownEvent]:
        """
        Build the working question list and start the clock.

        Subject-selection exams need ``sections`` (the student's picks).
        Other exams also accept free ``sections`` plus a ``duration_minutes``
        chosen by the student, which then replaces the exam's duration.
        """
        if self.status is not SessionStatus.NOT_STARTED:
            raise SessionStateError(f"session already {self.status.value}")
        check_window(self.exam, now)

        if duration_minutes is not None and duration_minutes <= 0:
            raise ConfigurationFailure("duration must be a positive number of minutes")

        if self.exam.is_custom:
            if sections is None:
                raise ConfigurationFailure("select your subjects before starting")
            if duration_minutes is not None:
                raise ConfigurationFailure("this exam uses its own duration")
            self.sections = validate_subject_selection(self.exam, sections)
            working = filter_by_sections(self.all_questions, self.sections)
        elif sections is not None:
            if duration_minutes is None:
                raise ConfigurationFailure("choose a duration for a custom exam")
            self.sections = validate_custom_sections(self.all_questions, sections)
            working = filter_by_sections(self.all_questions, self.sections)
        else:
            if duration_minutes is not None:
                raise ConfigurationFailure("a custom duration needs a section selection")
            working = list(self.all_questions)

        if not working:
            raise ConfigurationFailure("no questions in the selected sections")

        self.questions = shuffle_questions(working, shuffle_mode_for(self.exam), self.rng)
        self._question_ids = {q.id for q in self.questions}
        self.countdown = CountdownController.from_minutes(duration_minutes or self.exam.duration_minutes)
        self.status = SessionStatus.RUNNING
        events = self.countdown.start()
        self._pending_events.extend(events)
        logger.info(
            "Exam %s started by student %s: %d questions, %s",
            self.exam.id, self.student.student_id, len(self.questions),
            f"{self.countdown.total_seconds}s" if self.countdown.is_timed else "untimed",
        )
        return events

    def abandon(self) -> None:
        """Leave without submitting. The ledger goes to the local snapshot; no attempt is stored."""
        if self.status in (SessionStatus.SUBMITTING, SessionStatus.SUBMITTED, SessionStatus.ABANDONED):
            return
        if self.countdown is not None:
            self.countdown.stop()
        if self.status in (SessionStatus.RUNNING, SessionStatus.SUBMIT_FAILED):
            self._write_snapshot()
        self.status = SessionStatus.ABANDONED
        logger.info("Exam %s abandoned by student %s", self.exam.id, self.student.student_id)

    # --- answering -----------------------------------------------------------

    def _require_running(self):
        if self.status is not SessionStatus.RUNNING:
            raise SessionStateError(f"session is {self.status.value}")

    def _require_question(self, question_id: str) -> Question:
        for q in self.questions:
            if q.id == str(question_id):
                return q
        raise ValueError(f"question {question_id} is not part of this session")

    def select_answer(self, question_id: str, option_index: int) -> bool:
        """Lock in an answer. A question that already has one is left untouched."""
        self._require_running()
        q = self._require_question(question_id)
        if option_index < 0 or option_index >= len(q.options):
            raise ValueError(f"option {option_index} out of range for question {question_id}")
        recorded = self.ledger.select(q.id, option_index)
        if recorded:
            self.flags.clear(q.id)
        return recorded

    def toggle_review(self, question_id: str) -> bool:
        self._require_running()
        q = self._require_question(question_id)
        return self.flags.toggle(q.id)

    def status_of(self, question_id: str) -> str:
        return answer_status(str(question_id), self.ledger, self.flags)

    def go_to(self, index: int) -> int:
        if not self.questions:
            return 0
        self.current_index = min(max(0, index), len(self.questions) - 1)
        return self.current_index

    # --- clock ---------------------------------------------------------------

    @property
    def remaining_seconds(self) -> Optional[int]:
        if self.countdown is None:
            return None
        return self.countdown.remaining_seconds

    def tick(self, seconds: int = 1) -> List[CountdownEvent]:
        if self.status is not SessionStatus.RUNNING or self.countdown is None:
            return []
        events = self.countdown.tick(seconds)
        self._pending_events.extend(events)
        return events

    def drain_events(self) -> List[str]:
        events = [e.value for e in self._pending_events]
        self._pending_events.clear()
        return events

    async def run_clock(self, interval: float = 1.0) -> None:
        """Tick once per ``interval`` seconds and auto-submit when time runs out."""
        if self.countdown is None or not self.countdown.is_timed:
            return
        while self.status is SessionStatus.RUNNING:
            await asyncio.sleep(interval)
            events = self.tick()
            if CountdownEvent.EXPIRED in events:
                try:
                    await self.submit(auto=True)
                except SubmissionTransportFailure:
                    # answers are in the local snapshot; the student can retry
                    logger.exception("Auto-submit failed for exam %s student %s", self.exam.id, self.student.student_id)
                return

    # --- submission ----------------------------------------------------------

    @property
    def is_custom_run(self) -> bool:
        return self.sections is not None

    def score(self) -> AttemptResult:
        return score_attempt(
            self.questions,
            self.ledger,
            self.exam.marks_per_question,
            self.exam.negative_marks_per_wrong,
        )

    def _write_snapshot(self) -> None:
        if self.snapshots is None:
            return
        try:
            self.snapshots.save(self.student.student_id, self.exam.id, self.ledger.as_dict(), self.sections)
        except OSError:
            logger.exception("Could not write answer snapshot for exam %s student %s", self.exam.id, self.student.student_id)

    async def _persist(self, result: AttemptResult) -> SubmitOutcome:
        last_error: Optional[Exception] = None
        for attempt in range(self.submit_retries + 1):
            try:
                return await asyncio.wait_for(
                    self.gateway.submit_attempt(
                        self.student.student_id, self.exam.id, result, self.exam.marks_per_question
                    ),
                    timeout=self.submit_timeout,
                )
            except (SubmissionTransportFailure, asyncio.TimeoutError) as e:
                last_error = e
                logger.warning(
                    "Submitting exam %s for student %s failed (try %d/%d): %r",
                    self.exam.id, self.student.student_id, attempt + 1, self.submit_retries + 1, e,
                )
                if attempt < self.submit_retries and self.retry_delay:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))
        raise SubmissionTransportFailure(f"could not store the attempt: {last_error!r}")

    async def submit(self, auto: bool = False) -> Optional[SubmitOutcome]:
        """
        Score the ledger and store the attempt.

        Returns the outcome, the earlier outcome when already submitted, or
        None when another submission is in flight. ACCEPTED, DUPLICATE and
        REJECTED are terminal; a transport failure raises
        SubmissionTransportFailure and leaves the session ready for a retry.
        """
        if self.status is SessionStatus.SUBMITTED:
            return self.outcome
        if self.status is SessionStatus.SUBMITTING:
            return None
        if self.status not in (SessionStatus.RUNNING, SessionStatus.SUBMIT_FAILED):
            raise SessionStateError(f"cannot submit a session that is {self.status.value}")

        self.status = SessionStatus.SUBMITTING
        if self.countdown is not None:
            self.countdown.stop()

        self.result = self.score()
        self._write_snapshot()

        try:
            outcome = await self._persist(self.result)
        except SubmissionTransportFailure as e:
            self.status = SessionStatus.SUBMIT_FAILED
            self.last_error = str(e)
            raise

        if outcome.status is SubmitStatus.DUPLICATE and outcome.attempt is not None:
            # the first stored attempt stands; report it instead of this run
            self.result = result_from_record(outcome.attempt)
        self.outcome = outcome
        self.last_error = outcome.reason if outcome.status is SubmitStatus.REJECTED else None
        self.status = SessionStatus.SUBMITTED
        logger.info(
            "Exam %s %ssubmitted by student %s: %s, score=%s",
            self.exam.id, "auto-" if auto else "", self.student.student_id, outcome.status.value, self.result.score,
        )
        return outcome

    # --- views ---------------------------------------------------------------

    def state(self) -> dict:
        attempted = sum(1 for q in self.questions if self.ledger.is_answered(q.id))
        return {
            "exam_id": self.exam.id,
            "status": self.status.value,
            "remaining_seconds": self.remaining_seconds,
            "remaining_display": format_remaining(self.remaining_seconds),
            "answers": self.ledger.as_dict(),
            "marked_for_review": self.flags.as_list(),
            "attempted_count": attempted,
            "unattempted_count": len(self.questions) - attempted,
            "events": self.drain_events(),
        }
