# tests/conftest.py
import os

# Offline settings must be in place before the package reads its configuration
os.environ["USE_DUMMY_DATA"] = "true"
os.environ["HISTORY_BACKEND"] = "memory"
os.environ["LLM_RETRIES"] = "1"

import pytest

from testgenius.core.database import InMemoryHistoryStore
from testgenius.core.errors import PersistenceError
from testgenius.core.schemas import GatewayResult, Question, RawQuestion, ResolvedLanguage
from testgenius.core.utils import SessionRegistry
from testgenius.services.test_service import TestService


def make_raw_questions(count, with_answers=True):
    """Question i has options 'Qi A'..'Qi D'; the first option is correct"""
    return [
        RawQuestion(
            question=f"Question {i}",
            options=[f"Q{i} A", f"Q{i} B", f"Q{i} C", f"Q{i} D"],
            answer=f"Q{i} A" if with_answers else None,
        )
        for i in range(1, count + 1)
    ]


def make_questions(count, with_answers=True):
    return [Question.from_raw(raw) for raw in make_raw_questions(count, with_answers)]


def make_result(count=5, with_answers=True, requires_language_choice=False,
                resolved_language=ResolvedLanguage.EN):
    return GatewayResult(
        questions=make_raw_questions(count, with_answers),
        requires_language_choice=requires_language_choice,
        resolved_language=resolved_language,
    )


class FakeGateway:
    """Scripted stand-in for the AI service.

    ``results`` is consumed in order; the last item keeps being returned.
    Items that are exceptions are raised instead.
    """

    def __init__(self, results=None, scoring=None):
        self.results = list(results) if results is not None else [make_result()]
        self.scoring = scoring
        self.requests = []
        self.scoring_calls = 0

    def run(self, request):
        self.requests.append(request)
        outcome = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def score_with_ai(self, questions):
        self.scoring_calls += 1
        if isinstance(self.scoring, Exception):
            raise self.scoring
        if self.scoring is not None:
            return list(self.scoring)
        return [q.ai_assigned_answer or q.options[0] for q in questions]

    def health_check(self):
        return {"status": "healthy", "mode": "fake"}


class FailingHistoryStore(InMemoryHistoryStore):
    def append(self, entry):
        raise PersistenceError("Could not save test to history: disk full")


def make_service(gateway, history_store=None, **kwargs):
    kwargs.setdefault("auto_timer", False)
    return TestService(
        ai_service=gateway,
        history_store=history_store if history_store is not None else InMemoryHistoryStore(capacity=20),
        registry=SessionRegistry(),
        **kwargs,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def history_store():
    return InMemoryHistoryStore(capacity=20)


@pytest.fixture
def service(gateway, history_store):
    return make_service(gateway, history_store)
