"""
Conversation models for the guided incident intake.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Any
from enum import Enum, IntEnum

from app.models.report import Location, BullyingType, PerpetratorInfo, ReportDraft


class ConversationStep(IntEnum):
    """Intake steps. COMPLETE is the terminal sentinel."""
    ANONYMITY = 0
    IDENTITY = 1
    LOCATION = 2
    BULLYING_TYPE = 3
    PLATFORM = 4
    PERPETRATOR = 5
    EVIDENCE = 6
    COMPLETE = -1


class Expects(str, Enum):
    """Which input channel the current prompt is waiting on."""
    TEXT = "text"
    LOCATION = "location"
    NONE = "none"


class Sender(str, Enum):
    BOT = "bot"
    USER = "user"


class Prompt(BaseModel):
    """A bot prompt. Pure data, rendering is up to the caller."""
    text: str
    options: Optional[List[str]] = None
    expects: Expects = Expects.TEXT


class ChatMessage(BaseModel):
    """Transcript entry."""
    text: str
    sender: Sender
    options: Optional[List[str]] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ConversationDraft(BaseModel):
    """Report fields collected so far. Fields fill in monotonically."""
    user_id: Optional[str] = None
    name: Optional[str] = None
    age: Optional[int] = None
    location: Optional[Location] = None
    bullying_type: Optional[BullyingType] = None
    perpetrator_info: PerpetratorInfo = Field(default_factory=PerpetratorInfo)
    evidence_links: List[str] = Field(default_factory=list)


class ConversationState(BaseModel):
    """
    Per-session intake state. Transition functions return a new value
    instead of mutating this one.
    """
    step: ConversationStep = ConversationStep.ANONYMITY
    is_anonymous: bool = False
    draft: ConversationDraft = Field(default_factory=ConversationDraft)
    prompt: Optional[Prompt] = None
    transcript: List[ChatMessage] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.step == ConversationStep.COMPLETE

    @property
    def awaiting_location(self) -> bool:
        return self.step == ConversationStep.LOCATION and self.draft.age is not None


class StepResult(BaseModel):
    """
    Result of feeding one input into the conversation.

    A rejected input leaves `state` equal to the input state and re-issues
    the same prompt with `error` explaining why.
    """
    state: ConversationState
    prompt: Prompt
    accepted: bool = True
    error: Optional[str] = None
    report: Optional[ReportDraft] = None
    submission: Optional[Any] = None
