"""
Chat interest selection flow: capped multi-select plus one guarded save.
"""

import time
from typing import Any, Callable, Iterable, List, Optional, Tuple

from adapters.preference_store import BasePreferenceStore, PreferenceKeys
from entities.interests import InterestProfileUpdate
from entities.session import UserSession
from entities.submission import FeedbackBanner, SubmissionRequest, SubmissionResult
from repositories.user_repository import UserRepository
from services.scheduler import FlowTimers
from services.selection import toggle
from services.submission_flow import FlowMessages, SubmissionFlow
from common.exceptions import SelectionLimitExceededException, ValidationException
from common.logging import get_logger
from config.config import settings

logger = get_logger("interests_flow")

INTERESTS_MESSAGES = FlowMessages(
    success="Chat interest updated",
    failure="Failed to save interest",
    invalid_request="Please select at least one interest",
)


def limit_message(limit: int) -> str:
    return f"You can select up to {limit} interests"


def _require_selection(request: SubmissionRequest) -> Optional[str]:
    if not request.payload.get("interest_tags"):
        return "Please select at least one interest"
    return None


def _require_named_tags(request: SubmissionRequest) -> Optional[str]:
    for tag in request.payload.get("interest_tags") or ():
        if not isinstance(tag, str) or not tag.strip():
            return "Interest tags must be non-empty strings"
    return None


class InterestsFlow:
    """
    Holds the current interest selection for one signed-in user and saves it.

    The selection is restored from the preference store on `load()`. Local
    preferences are only rewritten after the remote save succeeds.
    """

    def __init__(
        self,
        session: UserSession,
        user_repository: UserRepository,
        preferences: BasePreferenceStore,
        available_interests: Iterable[str] = (),
        max_interests: Optional[int] = None,
        timers: Optional[FlowTimers] = None,
        feedback_duration: Optional[float] = None,
        dismiss_delay: Optional[float] = None,
        on_feedback: Optional[Callable[[FeedbackBanner], Any]] = None,
        on_feedback_cleared: Optional[Callable[[FeedbackBanner], Any]] = None,
        on_dismiss: Optional[Callable[[], Any]] = None,
        on_saved: Optional[Callable[[List[str]], Any]] = None,
    ):
        self.session = session
        self.user_repository = user_repository
        self.preferences = preferences
        self.available_interests = tuple(available_interests)
        self.max_interests = max_interests if max_interests is not None else settings.max_interests
        self._selection: Tuple[str, ...] = ()
        self._on_saved = on_saved

        self.flow = SubmissionFlow(
            name="interests",
            operation=self._save_interests,
            messages=INTERESTS_MESSAGES,
            timers=timers,
            feedback_duration=feedback_duration,
            dismiss_delay=dismiss_delay,
            validators=(_require_selection, _require_named_tags),
            on_completed=self._saved,
            on_feedback=on_feedback,
            on_feedback_cleared=on_feedback_cleared,
            on_dismiss=on_dismiss,
        )

    @property
    def selection(self) -> List[str]:
        return list(self._selection)

    def load(self) -> List[str]:
        """Restore the last saved selection and stamp when the screen was opened."""
        stored = self.preferences.get(PreferenceKeys.INTEREST_TAGS) or []
        self._selection = tuple(tag for tag in stored if isinstance(tag, str))[:self.max_interests]
        self.preferences.set(PreferenceKeys.INTEREST_TIME, int(time.time()))
        logger.debug(f"Loaded {len(self._selection)} saved interests")
        return self.selection

    def toggle(self, interest: str) -> bool:
        """
        Flip one interest. Returns False when the cap blocked the change, in
        which case the limit banner is shown and the selection is unchanged.
        """
        if self.available_interests and interest not in self.available_interests:
            raise ValidationException(
                detail=f"Unknown interest: {interest}",
                field="interest",
                value=interest
            )
        try:
            self._selection = toggle(interest, self._selection, self.max_interests)
        except SelectionLimitExceededException:
            logger.info(f"Interest '{interest}' not added, limit of {self.max_interests} reached")
            self.flow.schedule_feedback(limit_message(self.max_interests), is_error=True)
            return False
        return True

    def set_selection(self, interests: Iterable[str]) -> List[str]:
        """Replace the selection by toggling each interest in on an empty one."""
        self._selection = ()
        for interest in interests:
            if interest in self._selection:
                continue
            if not self.toggle(interest):
                break
        return self.selection

    def build_request(self) -> SubmissionRequest:
        return SubmissionRequest(
            subject_id=self.session.user_id,
            actor_id=self.session.user_id,
            payload={"interest_tags": list(self._selection)},
        )

    async def save(self) -> SubmissionResult:
        return await self.flow.submit(self.build_request())

    async def _save_interests(self, request: SubmissionRequest) -> bool:
        tags = list(request.payload["interest_tags"])
        await self.user_repository.update_interests(
            request.subject_id,
            InterestProfileUpdate(interest_tags=tags, interest_sentence=None)
        )
        self.preferences.set(PreferenceKeys.INTEREST_TAGS, tags)
        self.preferences.set(PreferenceKeys.INTEREST_SENTENCE, "")
        return True

    def _saved(self, result: SubmissionResult) -> None:
        if self._on_saved is not None:
            self._on_saved(self.selection)

    def dismiss(self) -> None:
        self.flow.dismiss()

    def close(self) -> None:
        self.flow.close()

    async def __aenter__(self) -> "InterestsFlow":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
