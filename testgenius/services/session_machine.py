# testgenius/services/session_machine.py
"""
Wizard state machine for one test session.

Every user action, gateway outcome and timer tick is an event fed into
``reduce(state, event)``, which returns a new ``SessionState`` and never
mutates the one it was given. Side effects (AI calls, file parsing,
history persistence) belong to the service layer, which dispatches the
outcome back in as another event.
"""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple

from ..core.answers import AnswerNormalizer
from ..core.config import config
from ..core.errors import IllegalTransitionError, InputValidationError
from ..core.schemas import (
    AnsweredQuestion, Difficulty, GatewayResult, GenerationMode, GenerationRequest,
    Language, Question, ResolvedLanguage, ScoreSummary, TestConfiguration,
)

logger = logging.getLogger(__name__)


class Step(str, Enum):
    METHOD_SELECTION = "method_selection"
    DOCUMENT_UPLOAD = "document_upload"
    SYLLABUS_UPLOAD = "syllabus_upload"
    SYLLABUS_OPTIONS = "syllabus_options"
    TOPIC_INPUT = "topic_input"
    TOPIC_OPTIONS = "topic_options"
    LANGUAGE_CHOICE = "language_choice"
    CONFIGURATION = "configuration"
    PREVIEW = "preview"
    TAKING_TEST = "taking_test"
    SCORING_CHOICE = "scoring_choice"
    SCORING = "scoring"
    RESULTS = "results"


class QuestionProgress(str, Enum):
    UNVIEWED = "unviewed"
    VIEWED = "viewed"
    ANSWERED = "answered"


# Step the user lands on after picking a method, and the step a failed or
# empty generation sends them back to.
ENTRY_STEPS = {
    GenerationMode.EXTRACT_FROM_DOCUMENT: Step.DOCUMENT_UPLOAD,
    GenerationMode.GENERATE_FROM_SYLLABUS: Step.SYLLABUS_UPLOAD,
    GenerationMode.GENERATE_FROM_TOPIC: Step.TOPIC_INPUT,
}
INPUT_STEPS = {
    GenerationMode.EXTRACT_FROM_DOCUMENT: Step.DOCUMENT_UPLOAD,
    GenerationMode.GENERATE_FROM_SYLLABUS: Step.SYLLABUS_OPTIONS,
    GenerationMode.GENERATE_FROM_TOPIC: Step.TOPIC_OPTIONS,
}
GENERATION_STEPS = (Step.DOCUMENT_UPLOAD, Step.SYLLABUS_OPTIONS, Step.TOPIC_OPTIONS, Step.LANGUAGE_CHOICE)

NO_QUESTIONS_NOTICE = (
    "AI could not extract or generate any questions based on the current settings. "
    "Please try different options, a different file, or ensure the content has clear "
    "multiple-choice questions in the selected language."
)


@dataclass(frozen=True)
class SessionState:
    step: Step = Step.METHOD_SELECTION
    mode: Optional[GenerationMode] = None
    source_text: Optional[str] = None
    source_identifier: str = ""
    request: Optional[GenerationRequest] = None
    pending: bool = False
    language_detour_used: bool = False
    resolved_language: Optional[ResolvedLanguage] = None
    questions: Tuple[Question, ...] = ()
    configuration: Optional[TestConfiguration] = None
    answers: Dict[str, str] = field(default_factory=dict)
    progress: Dict[str, QuestionProgress] = field(default_factory=dict)
    current_index: int = 0
    remaining_seconds: Optional[int] = None
    submitted: bool = False
    submitted_by_timer: bool = False
    score_summary: Optional[ScoreSummary] = None
    scored_questions: Tuple[AnsweredQuestion, ...] = ()
    error: Optional[str] = None
    notice: Optional[str] = None

    @property
    def is_generative(self) -> bool:
        return self.mode in (GenerationMode.GENERATE_FROM_SYLLABUS, GenerationMode.GENERATE_FROM_TOPIC)

    @property
    def answered_count(self) -> int:
        return len(self.answers)


# ==================== Events ====================

@dataclass(frozen=True)
class SelectMethod:
    mode: GenerationMode

@dataclass(frozen=True)
class SubmitDocument:
    text: str
    source_identifier: str

@dataclass(frozen=True)
class SubmitSyllabus:
    text: str
    source_identifier: str

@dataclass(frozen=True)
class SubmitTopic:
    topic: str

@dataclass(frozen=True)
class SubmitGenerationOptions:
    count: int
    difficulty: Difficulty = Difficulty.MEDIUM
    preferred_language: Optional[Language] = None

@dataclass(frozen=True)
class GenerationSucceeded:
    result: GatewayResult
    questions: Tuple[Question, ...] = ()

    @classmethod
    def from_result(cls, result: GatewayResult) -> "GenerationSucceeded":
        """Assign local ids to the gateway's questions"""
        return cls(result=result, questions=tuple(Question.from_raw(raw) for raw in result.questions))

@dataclass(frozen=True)
class GenerationFailed:
    message: str

@dataclass(frozen=True)
class ChooseLanguage:
    language: Language

@dataclass(frozen=True)
class ReturnToInput:
    pass

@dataclass(frozen=True)
class LoadQuestions:
    """Start from an existing question set (retake from history)"""
    mode: Optional[GenerationMode]
    source_identifier: str
    questions: Tuple[Question, ...]

@dataclass(frozen=True)
class Configure:
    configuration: TestConfiguration

@dataclass(frozen=True)
class StartTest:
    pass

@dataclass(frozen=True)
class SelectAnswer:
    question_id: str
    answer: Optional[str]

@dataclass(frozen=True)
class NavigateTo:
    index: int

@dataclass(frozen=True)
class Tick:
    pass

@dataclass(frozen=True)
class TimerExpired:
    pass

@dataclass(frozen=True)
class SubmitTest:
    pass

@dataclass(frozen=True)
class RequestAIScoring:
    pass

@dataclass(frozen=True)
class ScoringCompleted:
    summary: ScoreSummary
    scored_questions: Tuple[AnsweredQuestion, ...]

@dataclass(frozen=True)
class ScoringFailed:
    message: str

@dataclass(frozen=True)
class Retake:
    pass

@dataclass(frozen=True)
class NewTest:
    pass


# ==================== Transition function ====================

def reduce(state: SessionState, event) -> SessionState:
    """Apply one event and return the next state"""
    name = type(event).__name__

    # Timer and submit events may race; once the test has left TakingTest they are no-ops.
    if isinstance(event, (Tick, TimerExpired, SubmitTest)) and state.step != Step.TAKING_TEST:
        if isinstance(event, SubmitTest) and not state.submitted:
            raise IllegalTransitionError(state.step.value, name)
        if isinstance(event, SubmitTest):
            logger.warning("Duplicate submission ignored")
        return state

    if state.pending and not isinstance(event, (GenerationSucceeded, GenerationFailed,
                                                ScoringCompleted, ScoringFailed)):
        raise IllegalTransitionError(state.step.value, name, "a request is already in progress")

    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise IllegalTransitionError(state.step.value, name, "unknown event")

    new_state = handler(state, event)
    if new_state.step != state.step:
        logger.info(f"Session step: {state.step.value} -> {new_state.step.value} ({name})")
    return new_state


def _require(state: SessionState, event, *steps: Step) -> None:
    if state.step not in steps:
        raise IllegalTransitionError(state.step.value, type(event).__name__)


def _select_method(state: SessionState, event: SelectMethod) -> SessionState:
    _require(state, event, Step.METHOD_SELECTION)
    return replace(SessionState(), step=ENTRY_STEPS[event.mode], mode=event.mode)


def _submit_document(state: SessionState, event: SubmitDocument) -> SessionState:
    _require(state, event, Step.DOCUMENT_UPLOAD)
    text = (event.text or "").strip()
    if not text:
        raise InputValidationError("The uploaded document contains no readable text.")
    request = GenerationRequest(
        mode=GenerationMode.EXTRACT_FROM_DOCUMENT,
        text=text,
        source_identifier=event.source_identifier,
    )
    return replace(state, source_text=text, source_identifier=event.source_identifier,
                   request=request, pending=True, language_detour_used=False,
                   error=None, notice=None)


def _submit_syllabus(state: SessionState, event: SubmitSyllabus) -> SessionState:
    _require(state, event, Step.SYLLABUS_UPLOAD)
    text = (event.text or "").strip()
    if not text:
        raise InputValidationError("The uploaded syllabus contains no readable text.")
    return replace(state, step=Step.SYLLABUS_OPTIONS, source_text=text,
                   source_identifier=event.source_identifier, error=None)


def _submit_topic(state: SessionState, event: SubmitTopic) -> SessionState:
    _require(state, event, Step.TOPIC_INPUT)
    topic = (event.topic or "").strip()
    if not topic:
        raise InputValidationError("Please enter a topic.")
    if len(topic) > config.MAX_TOPIC_LENGTH:
        raise InputValidationError(f"Topic is too long (max {config.MAX_TOPIC_LENGTH} characters).")
    return replace(state, step=Step.TOPIC_OPTIONS, source_text=topic,
                   source_identifier=topic, error=None)


def _submit_options(state: SessionState, event: SubmitGenerationOptions) -> SessionState:
    _require(state, event, Step.SYLLABUS_OPTIONS, Step.TOPIC_OPTIONS)
    if not (config.MIN_QUESTIONS <= event.count <= config.MAX_QUESTIONS):
        raise InputValidationError(
            f"Number of questions must be between {config.MIN_QUESTIONS} and {config.MAX_QUESTIONS}."
        )
    request = GenerationRequest(
        mode=state.mode,
        text=state.source_text,
        source_identifier=state.source_identifier,
        count=event.count,
        difficulty=event.difficulty,
        preferred_language=event.preferred_language,
    )
    return replace(state, request=request, pending=True, language_detour_used=False,
                   error=None, notice=None)


def _generation_succeeded(state: SessionState, event: GenerationSucceeded) -> SessionState:
    if not state.pending or state.step not in GENERATION_STEPS:
        raise IllegalTransitionError(state.step.value, "GenerationSucceeded", "no generation in progress")

    result = event.result
    needs_language = (
        result.requires_language_choice
        and state.request.preferred_language is None
        and not state.language_detour_used
    )
    if needs_language:
        return replace(state, step=Step.LANGUAGE_CHOICE, pending=False, language_detour_used=True,
                       resolved_language=result.resolved_language, error=None)

    questions = tuple(event.questions)
    base = replace(state, pending=False, resolved_language=result.resolved_language, error=None,
                   questions=questions, configuration=None, score_summary=None, scored_questions=())
    if not questions:
        return replace(base, step=Step.PREVIEW, notice=NO_QUESTIONS_NOTICE)
    return replace(base, step=Step.CONFIGURATION, notice=None)


def _generation_failed(state: SessionState, event: GenerationFailed) -> SessionState:
    if not state.pending or state.step not in GENERATION_STEPS:
        raise IllegalTransitionError(state.step.value, "GenerationFailed", "no generation in progress")
    return replace(state, pending=False, error=event.message)


def _choose_language(state: SessionState, event: ChooseLanguage) -> SessionState:
    _require(state, event, Step.LANGUAGE_CHOICE)
    request = state.request.model_copy(update={"preferred_language": event.language})
    return replace(state, request=request, pending=True, error=None)


def _return_to_input(state: SessionState, event: ReturnToInput) -> SessionState:
    _require(state, event, Step.LANGUAGE_CHOICE, Step.CONFIGURATION, Step.PREVIEW)
    if state.mode is None:
        raise IllegalTransitionError(state.step.value, type(event).__name__, "no generation inputs to return to")
    # Sessions loaded from history carry no source text to regenerate from
    step = INPUT_STEPS[state.mode] if state.source_text is not None else ENTRY_STEPS[state.mode]
    return replace(state, step=step, questions=(), configuration=None, notice=None, error=None)


def _load_questions(state: SessionState, event: LoadQuestions) -> SessionState:
    _require(state, event, Step.METHOD_SELECTION)
    if not event.questions:
        raise InputValidationError("There are no questions to retake.")
    return replace(SessionState(), step=Step.CONFIGURATION, mode=event.mode,
                   source_identifier=event.source_identifier, questions=tuple(event.questions))


def _configure(state: SessionState, event: Configure) -> SessionState:
    _require(state, event, Step.CONFIGURATION)
    return replace(state, step=Step.PREVIEW, configuration=event.configuration, error=None)


def _start_test(state: SessionState, event: StartTest) -> SessionState:
    _require(state, event, Step.PREVIEW)
    if not state.questions:
        raise IllegalTransitionError(state.step.value, type(event).__name__, "there are no questions")

    configuration = state.configuration or TestConfiguration()
    progress = {q.id: QuestionProgress.UNVIEWED for q in state.questions}
    progress[state.questions[0].id] = QuestionProgress.VIEWED
    return replace(
        state,
        step=Step.TAKING_TEST,
        configuration=configuration,
        answers={},
        progress=progress,
        current_index=0,
        remaining_seconds=configuration.duration_seconds if configuration.is_timed_test else None,
        submitted=False,
        submitted_by_timer=False,
        score_summary=None,
        scored_questions=(),
        error=None,
    )


def _select_answer(state: SessionState, event: SelectAnswer) -> SessionState:
    _require(state, event, Step.TAKING_TEST)
    question = next((q for q in state.questions if q.id == event.question_id), None)
    if question is None:
        raise InputValidationError(f"Unknown question: {event.question_id}")

    answers = dict(state.answers)
    progress = dict(state.progress)
    if event.answer is None:
        answers.pop(question.id, None)
        progress[question.id] = QuestionProgress.VIEWED
    else:
        if not AnswerNormalizer.is_option(event.answer, question.options):
            raise InputValidationError("Selected answer is not one of the question's options.")
        answers[question.id] = event.answer
        progress[question.id] = QuestionProgress.ANSWERED
    return replace(state, answers=answers, progress=progress)


def _navigate(state: SessionState, event: NavigateTo) -> SessionState:
    _require(state, event, Step.TAKING_TEST)
    if not 0 <= event.index < len(state.questions):
        raise InputValidationError(f"Question index out of range: {event.index}")
    progress = dict(state.progress)
    question_id = state.questions[event.index].id
    if progress.get(question_id, QuestionProgress.UNVIEWED) == QuestionProgress.UNVIEWED:
        progress[question_id] = QuestionProgress.VIEWED
    return replace(state, current_index=event.index, progress=progress)


def _submit(state: SessionState, by_timer: bool) -> SessionState:
    next_step = Step.SCORING if state.is_generative else Step.SCORING_CHOICE
    return replace(
        state,
        step=next_step,
        pending=next_step == Step.SCORING,
        submitted=True,
        submitted_by_timer=by_timer,
        remaining_seconds=0 if by_timer else state.remaining_seconds,
        error=None,
    )


def _tick(state: SessionState, event: Tick) -> SessionState:
    if state.remaining_seconds is None:
        return state
    remaining = state.remaining_seconds - 1
    if remaining <= 0:
        logger.info("⏰ Time is up, submitting test")
        return _submit(state, by_timer=True)
    return replace(state, remaining_seconds=remaining)


def _timer_expired(state: SessionState, event: TimerExpired) -> SessionState:
    logger.info("⏰ Timer expired, submitting test")
    return _submit(state, by_timer=True)


def _submit_test(state: SessionState, event: SubmitTest) -> SessionState:
    return _submit(state, by_timer=False)


def _request_ai_scoring(state: SessionState, event: RequestAIScoring) -> SessionState:
    _require(state, event, Step.SCORING_CHOICE)
    return replace(state, step=Step.SCORING, pending=True, error=None)


def _scoring_completed(state: SessionState, event: ScoringCompleted) -> SessionState:
    _require(state, event, Step.SCORING, Step.SCORING_CHOICE)
    summary = event.summary
    if summary is None:
        raise IllegalTransitionError(state.step.value, "ScoringCompleted", "no score summary")
    if summary.total_questions != len(state.questions):
        raise IllegalTransitionError(state.step.value, "ScoringCompleted",
                                     "score summary does not cover every question")
    return replace(state, step=Step.RESULTS, pending=False, score_summary=summary,
                   scored_questions=tuple(event.scored_questions), error=None)


def _scoring_failed(state: SessionState, event: ScoringFailed) -> SessionState:
    _require(state, event, Step.SCORING)
    return replace(state, step=Step.SCORING_CHOICE, pending=False, error=event.message)


def _new_test(state: SessionState, event: NewTest) -> SessionState:
    return SessionState()


def _retake(state: SessionState, event: Retake) -> SessionState:
    _require(state, event, Step.RESULTS)
    return replace(
        state,
        step=Step.CONFIGURATION,
        answers={},
        progress={},
        current_index=0,
        remaining_seconds=None,
        submitted=False,
        submitted_by_timer=False,
        score_summary=None,
        scored_questions=(),
        error=None,
        notice=None,
    )


_HANDLERS = {
    SelectMethod: _select_method,
    SubmitDocument: _submit_document,
    SubmitSyllabus: _submit_syllabus,
    SubmitTopic: _submit_topic,
    SubmitGenerationOptions: _submit_options,
    GenerationSucceeded: _generation_succeeded,
    GenerationFailed: _generation_failed,
    ChooseLanguage: _choose_language,
    ReturnToInput: _return_to_input,
    LoadQuestions: _load_questions,
    Configure: _configure,
    StartTest: _start_test,
    SelectAnswer: _select_answer,
    NavigateTo: _navigate,
    Tick: _tick,
    TimerExpired: _timer_expired,
    SubmitTest: _submit_test,
    RequestAIScoring: _request_ai_scoring,
    ScoringCompleted: _scoring_completed,
    ScoringFailed: _scoring_failed,
    Retake: _retake,
    NewTest: _new_test,
}
