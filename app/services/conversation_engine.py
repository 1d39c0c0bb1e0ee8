"""
Conversation Engine - guided, branching incident intake ("Billy").

The intake is a fixed script. Each step expects one answer shape; there is
no free-text intent parsing.

    step              answer                     next
    ANONYMITY (0)     contains "yes" → anonymous IDENTITY
    IDENTITY (1)      anonymous: age             LOCATION (awaiting map)
                      named: name                LOCATION (awaiting age)
    LOCATION (2)      named path: age (text)     LOCATION (awaiting map)
                      map selection (event)      BULLYING_TYPE
    BULLYING_TYPE (3) one of BullyingType        PLATFORM
    PLATFORM (4)      platform                   PERPETRATOR
    PERPETRATOR (5)   username, may be blank     EVIDENCE
    EVIDENCE (6)      links, may be blank        COMPLETE (report finalized)

advance() and select_location() are pure: they return a new state and never
mutate the one passed in. ConversationEngine wraps a single session and owns
the submission sink.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
import asyncio
import inspect
import logging
import re

from app.core.exceptions import ReportValidationError
from app.models.conversation import (
    ChatMessage,
    ConversationDraft,
    ConversationState,
    ConversationStep,
    Expects,
    Prompt,
    Sender,
    StepResult,
)
from app.models.report import (
    BullyingType,
    Location,
    ReportDraft,
    ReportStatus,
    Severity,
)
from app.services.geo_math import is_valid_coordinate

logger = logging.getLogger(__name__)

ANONYMITY_OPTIONS = ["Yes, keep me anonymous", "No, I'll provide my name"]
BULLYING_TYPE_OPTIONS = [t.value for t in BullyingType]
SAFETY_TIP_OPTIONS = ["Yes, show me safety tips", "No, thank you"]

MIN_AGE = 1
MAX_AGE = 120
MAX_NAME_LENGTH = 100

GREETING = Prompt(
    text=(
        "Hi! I'm Billy, your friendly anti-bullying assistant. I'm here to help you report "
        "cyberbullying incidents safely and anonymously. Would you like to remain anonymous?"
    ),
    options=ANONYMITY_OPTIONS,
)
ANONYMOUS_AGE_PROMPT = Prompt(text="I understand. Your identity will be kept anonymous. What's your age?")
NAME_PROMPT = Prompt(text="Thank you for your trust. What's your name?")
AGE_PROMPT = Prompt(text="Thank you. What's your age?")
LOCATION_PROMPT = Prompt(text="Please select your location on the map:", expects=Expects.LOCATION)
BULLYING_TYPE_PROMPT = Prompt(
    text="What type of cyberbullying are you experiencing?",
    options=BULLYING_TYPE_OPTIONS,
)
PLATFORM_PROMPT = Prompt(text="On which platform did this occur? (e.g., Instagram, Facebook, WhatsApp)")
USERNAME_PROMPT = Prompt(
    text="Do you know the username or profile of the person? If yes, please share it (it's okay if you don't)"
)
EVIDENCE_PROMPT = Prompt(text="Do you have any evidence like screenshots or links? Please share them:")
COMPLETION_PROMPT = Prompt(
    text=(
        "Thank you for your report. It has been submitted and will be reviewed by our team. "
        "Would you like to learn about some safety measures you can take?"
    ),
    options=SAFETY_TIP_OPTIONS,
    expects=Expects.NONE,
)

# Blank answers are valid ("unknown" / "no evidence") only at these steps
OPTIONAL_STEPS = {ConversationStep.PERPETRATOR, ConversationStep.EVIDENCE}

_EVIDENCE_SPLIT = re.compile(r"[\s,]+")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def derive_severity(username: Optional[str], evidence_links: List[str]) -> Severity:
    """
    Initial severity from what the reporter could provide.

    username and evidence → high, exactly one → medium, neither → low.
    """
    has_username = bool(username and username.strip())
    has_evidence = bool(evidence_links)
    if has_username and has_evidence:
        return Severity.HIGH
    if has_username or has_evidence:
        return Severity.MEDIUM
    return Severity.LOW


def parse_evidence(text: str) -> List[str]:
    """Split an evidence answer into ordered, de-duplicated entries."""
    links = []
    for part in _EVIDENCE_SPLIT.split(text.strip()):
        if part and part not in links:
            links.append(part)
    return links


def parse_age(text: str) -> int:
    if not text.isdigit():
        raise ReportValidationError("Please enter your age as a number.", field="age")
    age = int(text)
    if not MIN_AGE <= age <= MAX_AGE:
        raise ReportValidationError(f"Please enter an age between {MIN_AGE} and {MAX_AGE}.", field="age")
    return age


def parse_bullying_type(text: str) -> BullyingType:
    for bullying_type in BullyingType:
        if bullying_type.value.lower() == text.lower():
            return bullying_type
    raise ReportValidationError(
        f"Please choose one of: {', '.join(BULLYING_TYPE_OPTIONS)}.",
        field="bullying_type"
    )


def finalize(state: ConversationState) -> ReportDraft:
    """Turn a fully collected draft into a submittable report."""
    draft = state.draft
    if draft.location is None or draft.bullying_type is None or not draft.perpetrator_info.platform:
        raise ReportValidationError("Report is missing required fields")

    username = draft.perpetrator_info.username or None
    return ReportDraft(
        user_id=draft.user_id,
        is_anonymous=state.is_anonymous,
        name=None if state.is_anonymous else draft.name,
        age=draft.age,
        location=draft.location,
        bullying_type=draft.bullying_type,
        perpetrator_info=draft.perpetrator_info.model_copy(update={"username": username}),
        evidence_links=list(draft.evidence_links),
        severity=derive_severity(username, draft.evidence_links),
        status=ReportStatus.PENDING,
    )


def _with_exchange(state: ConversationState, user_text: str, prompt: Prompt) -> ConversationState:
    state.transcript.append(ChatMessage(text=user_text, sender=Sender.USER))
    state.transcript.append(ChatMessage(text=prompt.text, sender=Sender.BOT, options=prompt.options))
    state.prompt = prompt
    return state


def _reject(state: ConversationState, error: str) -> StepResult:
    prompt = state.prompt or GREETING
    return StepResult(state=state, prompt=prompt, accepted=False, error=error)


# ---------------------------------------------------------------------------
# Step handlers: (copied state, trimmed answer) -> prompt
# ---------------------------------------------------------------------------

def _on_anonymity(state: ConversationState, text: str) -> Prompt:
    state.is_anonymous = "yes" in text.lower()
    state.step = ConversationStep.IDENTITY
    return ANONYMOUS_AGE_PROMPT if state.is_anonymous else NAME_PROMPT


def _on_identity(state: ConversationState, text: str) -> Prompt:
    if state.is_anonymous:
        state.draft.age = parse_age(text)
        state.step = ConversationStep.LOCATION
        return LOCATION_PROMPT

    if len(text) > MAX_NAME_LENGTH:
        raise ReportValidationError("That name is too long.", field="name")
    state.draft.name = text
    state.step = ConversationStep.LOCATION
    return AGE_PROMPT


def _on_location_text(state: ConversationState, text: str) -> Prompt:
    if state.awaiting_location:
        raise ReportValidationError("Please select your location on the map.", field="location")
    state.draft.age = parse_age(text)
    return LOCATION_PROMPT


def _on_bullying_type(state: ConversationState, text: str) -> Prompt:
    state.draft.bullying_type = parse_bullying_type(text)
    state.step = ConversationStep.PLATFORM
    return PLATFORM_PROMPT


def _on_platform(state: ConversationState, text: str) -> Prompt:
    state.draft.perpetrator_info.platform = text
    state.step = ConversationStep.PERPETRATOR
    return USERNAME_PROMPT


def _on_perpetrator(state: ConversationState, text: str) -> Prompt:
    state.draft.perpetrator_info.username = text or None
    state.step = ConversationStep.EVIDENCE
    return EVIDENCE_PROMPT


def _on_evidence(state: ConversationState, text: str) -> Prompt:
    state.draft.evidence_links = parse_evidence(text)
    state.step = ConversationStep.COMPLETE
    return COMPLETION_PROMPT


TRANSITIONS: Dict[ConversationStep, Callable[[ConversationState, str], Prompt]] = {
    ConversationStep.ANONYMITY: _on_anonymity,
    ConversationStep.IDENTITY: _on_identity,
    ConversationStep.LOCATION: _on_location_text,
    ConversationStep.BULLYING_TYPE: _on_bullying_type,
    ConversationStep.PLATFORM: _on_platform,
    ConversationStep.PERPETRATOR: _on_perpetrator,
    ConversationStep.EVIDENCE: _on_evidence,
}


# ---------------------------------------------------------------------------
# Transition functions
# ---------------------------------------------------------------------------

def start_conversation(user_id: Optional[str] = None) -> ConversationState:
    state = ConversationState(draft=ConversationDraft(user_id=user_id), prompt=GREETING)
    state.transcript.append(ChatMessage(text=GREETING.text, sender=Sender.BOT, options=GREETING.options))
    return state


def advance(state: ConversationState, answer: str) -> StepResult:
    """
    Feed one text answer into the conversation.

    Rejected input (blank at a required step, wrong shape, text while the map
    is expected, anything after completion) returns the unchanged state and
    the same prompt.
    """
    if state.is_complete:
        return _reject(state, "This conversation is already complete.")

    text = (answer or "").strip()
    if not text and state.step not in OPTIONAL_STEPS:
        return _reject(state, "Please enter an answer.")

    new_state = state.model_copy(deep=True)
    try:
        prompt = TRANSITIONS[new_state.step](new_state, text)
    except ReportValidationError as e:
        logger.debug(f"Rejected answer at step {state.step.name}: {e}")
        return _reject(state, str(e))

    report = None
    if new_state.is_complete:
        report = finalize(new_state)

    _with_exchange(new_state, text, prompt)
    return StepResult(state=new_state, prompt=prompt, report=report)


def select_location(state: ConversationState, location: Union[Location, Dict[str, Any]]) -> StepResult:
    """
    Out-of-band map selection. Only accepted while the location step is
    waiting for the map.
    """
    if not state.awaiting_location:
        return _reject(state, "A location is not expected right now.")

    try:
        if not isinstance(location, Location):
            location = Location.model_validate(location)
    except ValueError as e:
        return _reject(state, f"Invalid location: {e}")

    if not is_valid_coordinate(location.lat, location.lng):
        logger.warning(f"Rejected location with invalid coordinates: ({location.lat}, {location.lng})")
        return _reject(state, "Please select a valid location on the map.")

    new_state = state.model_copy(deep=True)
    new_state.draft.location = location
    new_state.step = ConversationStep.BULLYING_TYPE
    _with_exchange(new_state, f"Selected location: {location.label()}", BULLYING_TYPE_PROMPT)
    return StepResult(state=new_state, prompt=BULLYING_TYPE_PROMPT)


# ---------------------------------------------------------------------------
# Session wrapper
# ---------------------------------------------------------------------------

SubmissionSink = Callable[[ReportDraft], Union[Any, Awaitable[Any]]]


class ConversationEngine:
    """
    One reporter session.

    The finalized report is handed to `submit` exactly once. When the sink
    raises, the error propagates, the session stays on the evidence step and
    retry_submission() can resend the same report. Turns are serialized, so
    an answer that arrives while a submission is in flight sees the state the
    submission leaves behind.
    """

    def __init__(self, submit: SubmissionSink, user_id: Optional[str] = None):
        self._submit = submit
        self.state = start_conversation(user_id)
        self._pending: Optional[StepResult] = None
        self.submitted = False
        self._lock = asyncio.Lock()

    @property
    def prompt(self) -> Prompt:
        return self.state.prompt

    @property
    def is_complete(self) -> bool:
        return self.state.is_complete

    async def handle_answer(self, answer: str) -> StepResult:
        async with self._lock:
            return await self._commit(advance(self.state, answer))

    async def select_location(self, location: Union[Location, Dict[str, Any]]) -> StepResult:
        async with self._lock:
            return await self._commit(select_location(self.state, location))

    async def retry_submission(self) -> StepResult:
        async with self._lock:
            if self._pending is None:
                return _reject(self.state, "There is no report waiting to be submitted.")
            return await self._commit(self._pending)

    async def _commit(self, result: StepResult) -> StepResult:
        if not result.accepted:
            return result

        if result.report is not None:
            self._pending = result
            outcome = self._submit(result.report)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            self._pending = None
            self.submitted = True
            result = result.model_copy(update={"submission": outcome})
            logger.info("Conversation complete, report submitted")

        self.state = result.state
        return result
