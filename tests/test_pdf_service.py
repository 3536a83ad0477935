# tests/test_pdf_service.py
import pytest

from conftest import make_questions
from testgenius.core.errors import ReportError
from testgenius.core.schemas import GenerationMode, TestConfiguration
from testgenius.core.scoring import build_score_summary
from testgenius.services import pdf_service as pdf_module
from testgenius.services.pdf_service import PDFService


def make_summary():
    questions = make_questions(3)
    configuration = TestConfiguration(negative_marking_enabled=True, negative_mark_per_wrong=0.5)
    answers = {questions[0].id: "Q1 A", questions[1].id: "Q2 <B>"}
    summary, _ = build_score_summary(questions, answers, [q.ai_assigned_answer for q in questions], configuration)
    return summary, configuration


def test_report_is_a_pdf():
    summary, configuration = make_summary()
    data = PDFService().generate_results_report(summary, configuration, GenerationMode.GENERATE_FROM_TOPIC,
                                                "Cells & <tissues>")
    assert data.startswith(b"%PDF")


def test_rendering_failure_raises_report_error(monkeypatch):
    def broken_build(self, story):
        raise RuntimeError("font missing")

    monkeypatch.setattr(pdf_module.SimpleDocTemplate, "build", broken_build)
    summary, _ = make_summary()

    with pytest.raises(ReportError, match="font missing"):
        PDFService().generate_results_report(summary)
