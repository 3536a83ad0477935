# testgenius/services/pdf_service.py
import io
import logging
from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape
from reportlab.lib.pagesizes import LETTER, A4
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet
from ..core.config import config
from ..core.errors import ReportError
from ..core.schemas import GenerationMode, ScoreSummary, TestConfiguration
from ..core.utils import DateTimeUtils

logger = logging.getLogger(__name__)

PAGE_SIZES = {"LETTER": LETTER, "A4": A4}

MODE_LABELS = {
    GenerationMode.EXTRACT_FROM_DOCUMENT: "Extracted from document",
    GenerationMode.GENERATE_FROM_SYLLABUS: "Generated from syllabus",
    GenerationMode.GENERATE_FROM_TOPIC: "Generated from topic",
}

class PDFService:
    """Results reports for finished tests"""

    def generate_results_report(self, summary: ScoreSummary, configuration: Optional[TestConfiguration] = None,
                                mode: Optional[GenerationMode] = None, source_identifier: str = "",
                                taken_at: Optional[datetime] = None) -> bytes:
        """Generate PDF report from a score summary"""
        try:
            pdf_buffer = io.BytesIO()
            doc = SimpleDocTemplate(pdf_buffer, pagesize=PAGE_SIZES.get(config.PDF_PAGE_SIZE.upper(), LETTER))
            styles = getSampleStyleSheet()
            story = []

            story.append(Paragraph("TestGenius Results", styles['Title']))
            story.append(Spacer(1, 12))

            # Test info
            info_lines = [
                f"Source: {escape(source_identifier or 'Unknown')}",
                f"Method: {MODE_LABELS.get(mode, 'Unknown')}",
                f"Date: {DateTimeUtils.format_timestamp(taken_at or DateTimeUtils.utc_now())}",
            ]
            if configuration:
                timer = DateTimeUtils.format_duration(configuration.duration_seconds) if configuration.is_timed_test else "None"
                marking = (f"-{configuration.negative_mark_per_wrong:g} per wrong answer"
                           if configuration.negative_marking_enabled else "Off")
                info_lines.append(f"Timer: {timer}")
                info_lines.append(f"Negative marking: {marking}")
            story.append(Paragraph("<br/>".join(info_lines), styles['Normal']))
            story.append(Spacer(1, 12))

            # Score
            story.append(Paragraph("Score", styles['Heading2']))
            score_lines = [
                f"Score: {summary.score:g} / {summary.total_questions} ({summary.percentage}%)",
                f"Correct: {summary.correct_count}",
                f"Incorrect: {summary.incorrect_count}",
                f"Unattempted: {summary.unattempted_count}",
            ]
            story.append(Paragraph("<br/>".join(score_lines), styles['Normal']))
            story.append(Spacer(1, 12))

            # Per-question breakdown
            story.append(Paragraph("Questions", styles['Heading2']))
            for i, item in enumerate(summary.results, 1):
                story.append(Paragraph(f"<b>Q{i}.</b> {escape(item.question_text)}", styles['Normal']))
                if item.options:
                    option_lines = [f"{chr(65 + j)}. {escape(option)}" for j, option in enumerate(item.options)]
                    story.append(Paragraph("<br/>".join(option_lines), styles['Normal']))

                if item.user_selected_answer is None:
                    status = "Not attempted"
                else:
                    status = "Correct" if item.is_correct else "Incorrect"
                detail = (
                    f"Your answer: {escape(item.user_selected_answer or '-')}<br/>"
                    f"Correct answer: {escape(item.actual_correct_answer)}<br/>"
                    f"Result: {status}"
                )
                story.append(Paragraph(detail, styles['Normal']))
                story.append(Spacer(1, 8))

            doc.build(story)
            pdf_buffer.seek(0)
            logger.info(f"✅ PDF report generated for {summary.total_questions} questions")
            return pdf_buffer.read()

        except Exception as e:
            logger.error(f"❌ PDF generation error: {e}")
            raise ReportError(f"PDF generation failed: {e}") from e

# Singleton pattern for PDF service
_pdf_service = None

def get_pdf_service() -> PDFService:
    """Get PDF service instance (singleton)"""
    global _pdf_service
    if _pdf_service is None:
        _pdf_service = PDFService()
    return _pdf_service
