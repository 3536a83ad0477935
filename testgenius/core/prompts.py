# testgenius/core/prompts.py
import json
from typing import List, Dict, Any, Optional

JSON_QUESTIONS_FORMAT = """Respond with a single JSON object and nothing else:
{
  "questions": [
    {"question": "<question text>", "options": ["<A>", "<B>", "<C>", "<D>"], "answer": "<exact text of the correct option or null>"}
  ],
  "requiresLanguageChoice": <true|false>,
  "resolvedLanguage": "<en|hi|mixed|unknown>"
}
Every question has exactly 4 options. "answer" must repeat the correct option verbatim."""

LANGUAGE_NAMES = {"en": "English", "hi": "Hindi"}

class PromptTemplates:
    """Centralized prompt template management"""

    @staticmethod
    def _language_block(preferred_language: Optional[str], ambiguity_rules: str) -> str:
        if preferred_language:
            name = LANGUAGE_NAMES.get(preferred_language, preferred_language)
            return (
                f"The user prefers {name}. Work only with questions in {name}.\n"
                f'Set "resolvedLanguage" to "{preferred_language}" and "requiresLanguageChoice" to false.'
            )
        return ambiguity_rules

    @staticmethod
    def create_extraction_prompt(text: str, preferred_language: Optional[str] = None) -> str:
        """Prompt for extracting existing multiple-choice questions from a document"""
        language_block = PromptTemplates._language_block(preferred_language, """Check whether the text contains questions in English, Hindi, or both.
- If BOTH languages are substantially present: set "requiresLanguageChoice" to true, "resolvedLanguage" to "mixed", and return an empty "questions" array.
- If ONE language dominates: set "requiresLanguageChoice" to false, "resolvedLanguage" to "en" or "hi", and extract the questions in that language.
- Otherwise: set "requiresLanguageChoice" to false, "resolvedLanguage" to "unknown", and return an empty "questions" array.""")

        return f"""You are an expert at extracting multiple-choice questions from text.

INPUT TEXT:
{text}

LANGUAGE:
{language_block}

REQUIREMENTS:
- Extract the multiple-choice questions with 4 options each
- If options are missing for a question, write reasonable ones
- If the text states the correct answer, copy it; otherwise set "answer" to null

{JSON_QUESTIONS_FORMAT}"""

    @staticmethod
    def create_syllabus_prompt(syllabus_text: str, count: int, difficulty: str,
                               preferred_language: Optional[str] = None) -> str:
        """Prompt for generating questions that cover a syllabus"""
        language_block = PromptTemplates._language_block(preferred_language, """Determine the primary language of the syllabus (English or Hindi).
- If it is clearly one language: generate in that language, set "resolvedLanguage" accordingly and "requiresLanguageChoice" to false.
- If it is mixed and a preference is needed: set "requiresLanguageChoice" to true, "resolvedLanguage" to "mixed", and return an empty "questions" array.
- Otherwise: set "requiresLanguageChoice" to false, "resolvedLanguage" to "unknown", and return an empty "questions" array.""")

        return f"""You are an expert curriculum designer and question generator.

SYLLABUS:
{syllabus_text}

LANGUAGE:
{language_block}

REQUIREMENTS:
- Generate exactly {count} questions relevant to the syllabus content
- Difficulty level: {difficulty}
- 4 distinct options per question with exactly one correct answer
- Always fill "answer" with the correct option

{JSON_QUESTIONS_FORMAT}"""

    @staticmethod
    def create_topic_prompt(topic: str, count: int, difficulty: str,
                            preferred_language: Optional[str] = None) -> str:
        """Prompt for generating questions about free-text topics"""
        language_block = PromptTemplates._language_block(preferred_language, """Generate in English by default and set "resolvedLanguage" to "en".
If the topic itself clearly implies another language (for example "Hindi Grammar"), use it and set "resolvedLanguage" accordingly.
Set "requiresLanguageChoice" to false.""")

        return f"""You are an expert curriculum designer and question generator.

TOPIC(S): {topic}

LANGUAGE:
{language_block}

REQUIREMENTS:
- Generate exactly {count} questions about the topic(s)
- Difficulty level: {difficulty}
- 4 distinct options per question with exactly one correct answer
- Suitable for a general audience unless the topic implies a specific one
- For matching questions list items clearly; use markdown lists for bullet points
- Always fill "answer" with the correct option

{JSON_QUESTIONS_FORMAT}"""

    @staticmethod
    def create_scoring_prompt(items: List[Dict[str, Any]]) -> str:
        """Prompt asking the AI to decide the correct option of each question"""
        payload = json.dumps(items, ensure_ascii=False, indent=2)

        return f"""You are grading a multiple-choice test. For every question decide which option is correct.

QUESTIONS:
{payload}

RULES:
- "proposedAnswer" is the answer recorded when the question was created; keep it unless it is clearly wrong
- When "proposedAnswer" is null, work out the correct option yourself
- "correctAnswer" must repeat one of the question's options verbatim
- Return every question id exactly once

Respond with a single JSON object and nothing else:
{{"results": [{{"id": "<question id>", "correctAnswer": "<option text>"}}]}}"""
