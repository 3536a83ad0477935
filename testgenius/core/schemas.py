# testgenius/core/schemas.py
"""
Pydantic models and schemas for the gateway boundary, the test data model
and request/response validation.

Field names are snake_case in Python and camelCase on the wire, so persisted
history keeps the layout the browser client already reads.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .config import config
from .utils import generate_id


class GenerationMode(str, Enum):
    EXTRACT_FROM_DOCUMENT = "extract_from_document"
    GENERATE_FROM_SYLLABUS = "generate_from_syllabus"
    GENERATE_FROM_TOPIC = "generate_from_topic"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Language(str, Enum):
    EN = "en"
    HI = "hi"


class ResolvedLanguage(str, Enum):
    EN = "en"
    HI = "hi"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== Gateway boundary ====================

class RawQuestion(BaseModel):
    """Question as returned by the AI, before local normalization"""
    question: str
    options: List[str]
    answer: Optional[str] = None

    @field_validator("options")
    @classmethod
    def four_options(cls, options: List[str]) -> List[str]:
        if len(options) != config.OPTIONS_PER_QUESTION:
            raise ValueError(f"expected {config.OPTIONS_PER_QUESTION} options, got {len(options)}")
        return options


class GatewayResult(CamelModel):
    questions: List[RawQuestion] = Field(default_factory=list)
    requires_language_choice: bool = False
    resolved_language: ResolvedLanguage = ResolvedLanguage.UNKNOWN


class GenerationRequest(CamelModel):
    """Inputs of one generation attempt, kept so the language detour can re-invoke it"""
    mode: GenerationMode
    text: str
    source_identifier: str
    count: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    preferred_language: Optional[Language] = None


# ==================== Test data model ====================

class Question(CamelModel):
    id: str = Field(default_factory=generate_id)
    question_text: str
    options: List[str]
    ai_assigned_answer: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: RawQuestion) -> "Question":
        return cls(question_text=raw.question, options=list(raw.options), ai_assigned_answer=raw.answer)


class AnsweredQuestion(Question):
    user_selected_answer: Optional[str] = None
    actual_correct_answer: Optional[str] = None
    is_correct: Optional[bool] = None


class TestConfiguration(CamelModel):
    __test__ = False

    is_timed_test: bool = False
    duration_seconds: int = Field(default=0, ge=0)
    negative_marking_enabled: bool = False
    negative_mark_per_wrong: float = Field(default=config.DEFAULT_NEGATIVE_MARK, gt=0)

    @model_validator(mode="after")
    def check_timer(self) -> "TestConfiguration":
        if self.is_timed_test:
            if self.duration_seconds <= 0:
                raise ValueError("Timer must be a positive number of seconds.")
            max_seconds = config.MAX_TIMER_MINUTES * 60
            if self.duration_seconds > max_seconds:
                raise ValueError(f"Timer cannot exceed {config.MAX_TIMER_MINUTES} minutes.")
        return self


class ResultItem(CamelModel):
    question_id: Optional[str] = None
    question_text: str
    user_selected_answer: Optional[str] = None
    actual_correct_answer: str
    is_correct: bool
    options: List[str] = Field(default_factory=list)


class ScoreSummary(CamelModel):
    score: float = Field(ge=0)
    total_questions: int
    results: List[ResultItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def results_match_total(self) -> "ScoreSummary":
        if len(self.results) != self.total_questions:
            raise ValueError("results must contain one item per question")
        return self

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.results if r.is_correct)

    @property
    def incorrect_count(self) -> int:
        return sum(1 for r in self.results if not r.is_correct and r.user_selected_answer is not None)

    @property
    def unattempted_count(self) -> int:
        return self.total_questions - self.correct_count - self.incorrect_count

    @property
    def percentage(self) -> float:
        if not self.total_questions:
            return 0.0
        return round(self.score / self.total_questions * 100, 1)


class HistoryEntry(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=generate_id)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    generation_mode: Optional[GenerationMode] = None
    source_identifier: str = ""
    questions: List[Question] = Field(default_factory=list)
    test_configuration: TestConfiguration = Field(default_factory=TestConfiguration)
    score_summary: ScoreSummary


# ==================== Request bodies ====================

class SelectMethodRequest(CamelModel):
    mode: GenerationMode


class TopicRequest(CamelModel):
    topic: str


class GenerationOptionsRequest(CamelModel):
    count: int
    difficulty: Difficulty = Difficulty.MEDIUM
    preferred_language: Optional[Language] = None


class LanguageRequest(CamelModel):
    language: Language


class AnswerRequest(CamelModel):
    question_id: str
    answer: Optional[str] = None


class NavigateRequest(CamelModel):
    index: int
