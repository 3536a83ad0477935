# testgenius/core/ai_services.py
import json
import logging
import re
import time
from typing import List, Dict, Any, Optional, Sequence
from groq import Groq
from pydantic import ValidationError
from .config import config
from .dummy_data import get_dummy_questions
from .errors import GatewayError
from .prompts import PromptTemplates
from .schemas import (
    GatewayResult, GenerationMode, GenerationRequest, Question, RawQuestion, ResolvedLanguage,
)

logger = logging.getLogger(__name__)

_DEVANAGARI_RE = re.compile(r"[ऀ-ॿ]")
_LATIN_RE = re.compile(r"[A-Za-z]")
_JSON_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")

class AIService:
    """Question generation gateway and AI-assisted scoring over Groq"""

    def __init__(self, client=None):
        """Initialize Groq client unless running on dummy data"""
        self.client = client
        self.use_dummy = config.USE_DUMMY_DATA and client is None

        if self.use_dummy:
            logger.info("🔧 AI Service in dummy mode - using canned questions")
        elif self.client is None:
            self._init_groq_client()

    def _init_groq_client(self):
        """Initialize Groq client"""
        try:
            if not config.GROQ_API_KEY:
                raise GatewayError("GROQ_API_KEY not provided")

            self.client = Groq(api_key=config.GROQ_API_KEY, timeout=config.GROQ_TIMEOUT)
            logger.info("✅ Groq client initialized")

        except GatewayError:
            raise
        except Exception as e:
            logger.error(f"❌ Groq client initialization failed: {e}")
            raise GatewayError(f"AI service initialization failed: {e}")

    # ==================== Generation ====================

    def run(self, request: GenerationRequest) -> GatewayResult:
        """Invoke the operation matching the request's generation mode"""
        language = request.preferred_language.value if request.preferred_language else None

        if request.mode == GenerationMode.EXTRACT_FROM_DOCUMENT:
            return self.extract_questions(request.text, language)
        if request.mode == GenerationMode.GENERATE_FROM_SYLLABUS:
            return self.generate_from_syllabus(request.text, request.count, request.difficulty.value, language)
        return self.generate_from_topic(request.text, request.count, request.difficulty.value, language)

    def extract_questions(self, text: str, preferred_language: Optional[str] = None) -> GatewayResult:
        """Extract multiple-choice questions already present in a document"""
        logger.info(f"🤖 Extracting questions (language: {preferred_language or 'auto'}, dummy: {self.use_dummy})")

        if self.use_dummy:
            return self._dummy_generation(text, preferred_language, count=None)

        prompt = PromptTemplates.create_extraction_prompt(text[:config.MAX_DOCUMENT_CHARS], preferred_language)
        payload = self._complete_json(prompt, temperature=config.GROQ_TEMPERATURE)
        return self._validate_result(payload, preferred_language, count=None,
                                     default_language=ResolvedLanguage.UNKNOWN)

    def generate_from_syllabus(self, syllabus_text: str, count: int, difficulty: str,
                               preferred_language: Optional[str] = None) -> GatewayResult:
        """Generate questions covering a syllabus"""
        logger.info(f"🤖 Generating {count} {difficulty} questions from syllabus (dummy: {self.use_dummy})")

        if self.use_dummy:
            return self._dummy_generation(syllabus_text, preferred_language, count=count)

        prompt = PromptTemplates.create_syllabus_prompt(
            syllabus_text[:config.MAX_DOCUMENT_CHARS], count, difficulty, preferred_language
        )
        payload = self._complete_json(prompt, temperature=config.GROQ_TEMPERATURE)
        return self._validate_result(payload, preferred_language, count=count,
                                     default_language=ResolvedLanguage.UNKNOWN)

    def generate_from_topic(self, topic: str, count: int, difficulty: str,
                            preferred_language: Optional[str] = None) -> GatewayResult:
        """Generate questions about a free-text topic"""
        logger.info(f"🤖 Generating {count} {difficulty} questions on topic '{topic[:60]}' (dummy: {self.use_dummy})")

        if self.use_dummy:
            return self._dummy_generation(topic, preferred_language or "en", count=count)

        prompt = PromptTemplates.create_topic_prompt(topic, count, difficulty, preferred_language)
        payload = self._complete_json(prompt, temperature=config.GROQ_TEMPERATURE)
        return self._validate_result(payload, preferred_language, count=count,
                                     default_language=ResolvedLanguage(preferred_language or "en"))

    # ==================== Scoring ====================

    def score_with_ai(self, questions: Sequence[Question]) -> List[str]:
        """Ask the AI for the correct option of every question, in question order.

        A stored answer is offered as a proposal; questions without one are
        adjudicated from scratch.
        """
        logger.info(f"🎯 AI scoring {len(questions)} questions (dummy: {self.use_dummy})")

        if self.use_dummy:
            return [q.ai_assigned_answer or q.options[0] for q in questions]

        items = [
            {"id": q.id, "question": q.question_text, "options": q.options, "proposedAnswer": q.ai_assigned_answer}
            for q in questions
        ]
        prompt = PromptTemplates.create_scoring_prompt(items)
        payload = self._complete_json(prompt, temperature=config.SCORING_TEMPERATURE)

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise GatewayError("AI scoring response has no results list")

        decided = {}
        for item in results:
            if isinstance(item, dict) and isinstance(item.get("id"), str):
                decided[item["id"]] = item.get("correctAnswer")

        correct_answers = []
        for q in questions:
            answer = decided.get(q.id)
            if not isinstance(answer, str) or answer not in q.options:
                if answer is not None:
                    logger.warning(f"AI picked an answer outside the options for question {q.id}")
                answer = q.ai_assigned_answer
            if answer is None:
                raise GatewayError(f"AI scoring did not decide an answer for question: {q.question_text[:80]}")
            correct_answers.append(answer)

        logger.info(f"✅ AI scoring decided {len(correct_answers)} answers")
        return correct_answers

    # ==================== LLM plumbing ====================

    def _complete_json(self, prompt: str, temperature: float) -> Dict[str, Any]:
        response = self._call_llm_with_retries(prompt, temperature=temperature)
        return self._parse_json(response)

    def _call_llm_with_retries(self, prompt: str, max_tokens: int = None,
                               temperature: float = None, retries: int = None) -> str:
        """Call LLM with retry logic"""
        if max_tokens is None:
            max_tokens = config.GROQ_MAX_TOKENS
        if temperature is None:
            temperature = config.GROQ_TEMPERATURE
        if retries is None:
            retries = config.LLM_RETRIES

        if not self.client:
            raise GatewayError("AI service not available")

        last_error = None

        for attempt in range(retries):
            try:
                logger.debug(f"LLM call attempt {attempt + 1}/{retries}")

                completion = self.client.chat.completions.create(
                    model=config.GROQ_MODEL,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=temperature,
                    max_completion_tokens=max_tokens,
                    top_p=config.GROQ_TOP_P,
                    response_format={"type": "json_object"}
                )

                if not completion.choices:
                    raise GatewayError("LLM returned no response")

                response = (completion.choices[0].message.content or "").strip()

                if not response:
                    raise GatewayError("LLM returned empty content")

                return response

            except Exception as e:
                last_error = e
                logger.warning(f"LLM call attempt {attempt + 1} failed: {e}")
                if attempt < retries - 1:
                    time.sleep(2 ** attempt)

        raise GatewayError(f"AI service call failed: {last_error}")

    @staticmethod
    def _parse_json(response: str) -> Dict[str, Any]:
        cleaned = _JSON_FENCE_RE.sub("", response.strip())
        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error(f"❌ AI response is not valid JSON: {e}")
            raise GatewayError("AI service returned an unexpected data format.")
        if not isinstance(payload, dict):
            raise GatewayError("AI service returned an unexpected data format.")
        return payload

    def _validate_result(self, payload: Dict[str, Any], preferred_language: Optional[str],
                         count: Optional[int], default_language: ResolvedLanguage) -> GatewayResult:
        """Validate and repair the AI output before it reaches a session"""
        raw_questions = payload.get("questions")
        if raw_questions is None:
            raw_questions = []
        if not isinstance(raw_questions, list):
            raise GatewayError("AI response field 'questions' is not a list")

        questions = []
        for i, item in enumerate(raw_questions, 1):
            question = self._repair_question(item)
            if question is None:
                logger.warning(f"Dropped malformed question {i} from AI response")
                continue
            questions.append(question)

        if count is not None:
            questions = questions[:count]

        if preferred_language:
            resolved = ResolvedLanguage(preferred_language)
            requires_choice = False
        else:
            try:
                resolved = ResolvedLanguage(payload.get("resolvedLanguage") or payload.get("extractedLanguage"))
            except ValueError:
                resolved = default_language
            requires_choice = payload.get("requiresLanguageChoice")
            if not isinstance(requires_choice, bool):
                requires_choice = resolved == ResolvedLanguage.MIXED

        logger.info(f"✅ Gateway produced {len(questions)} questions (language: {resolved.value}, "
                    f"choice needed: {requires_choice})")
        return GatewayResult(questions=questions, requires_language_choice=requires_choice,
                             resolved_language=resolved)

    @staticmethod
    def _repair_question(item: Any) -> Optional[RawQuestion]:
        if not isinstance(item, dict):
            return None

        text = item.get("question")
        options = item.get("options")
        if not isinstance(text, str) or not text.strip() or not isinstance(options, list):
            return None

        options = [o.strip() for o in options if isinstance(o, str) and o.strip()]
        if len(options) < config.OPTIONS_PER_QUESTION:
            return None
        options = options[:config.OPTIONS_PER_QUESTION]

        answer = item.get("answer")
        if isinstance(answer, str):
            answer = answer.strip()
        if answer not in options:
            answer = None

        try:
            return RawQuestion(question=text.strip(), options=options, answer=answer)
        except ValidationError:
            return None

    # ==================== Dummy mode ====================

    def _dummy_generation(self, text: str, preferred_language: Optional[str],
                          count: Optional[int]) -> GatewayResult:
        """Canned questions; mixed English/Hindi input asks for a language choice"""
        if preferred_language:
            language = preferred_language
        else:
            has_hindi = bool(_DEVANAGARI_RE.search(text or ""))
            has_english = bool(_LATIN_RE.search(text or ""))
            if has_hindi and has_english:
                return GatewayResult(questions=[], requires_language_choice=True,
                                     resolved_language=ResolvedLanguage.MIXED)
            language = "hi" if has_hindi else "en"

        questions = get_dummy_questions(language, count or 5)
        return GatewayResult(
            questions=[RawQuestion(**q) for q in questions],
            requires_language_choice=False,
            resolved_language=ResolvedLanguage(language),
        )

    def health_check(self) -> Dict[str, Any]:
        """Check AI service health"""
        if self.use_dummy:
            return {
                "status": "healthy",
                "mode": "dummy",
                "client_ready": True,
                "message": "Running in dummy data mode"
            }

        if not self.client:
            return {"status": "error", "message": "Client not initialized"}

        return {
            "status": "healthy",
            "mode": "live",
            "model": config.GROQ_MODEL,
            "client_ready": True
        }

# Singleton pattern for AI service
_ai_service = None

def get_ai_service() -> AIService:
    """Get AI service instance (singleton)"""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service

def close_ai_service():
    """Close AI service instance"""
    global _ai_service
    if _ai_service:
        _ai_service = None
