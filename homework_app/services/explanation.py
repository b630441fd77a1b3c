"""Feedback for an incorrect answer: explanation plus one follow-up question.

Sources are tried from most to least authored:

1. explanation and follow-up written by the teacher on the matched pattern
   (``high`` confidence, no backend call);
2. a combined generative rewrite grounded on the misconception description;
3. a two-step rephrase then follow-up generation;
4. with no misconception at all, a generative answer from the raw question,
   and finally a templated sentence (``low`` confidence).

Every generative step has a static fallback beneath it, so the returned
payload is always complete even with the backend permanently unavailable.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from homework_app.services.llm_client import LLMClient, parse_json_response

logger = logging.getLogger(__name__)

CONFIDENCE_HIGH = "high"
CONFIDENCE_MEDIUM = "medium"
CONFIDENCE_LOW = "low"

MIN_REPHRASE_LENGTH = 20

_FOLLOW_UP_QUESTION_RE = re.compile(
    r"^\s*Question:\s*(.+?)\s*(?:Answer:.*)?$", re.IGNORECASE | re.MULTILINE
)
_FOLLOW_UP_ANSWER_RE = re.compile(r"Answer:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)


@dataclass
class ExplanationRequest:
    question: str
    correct_answer: str
    student_answer: str
    topic: str
    misconception_category: Optional[str] = None
    misconception_description: Optional[str] = None
    static_explanation: Optional[str] = None
    static_follow_up: Optional[Tuple[str, str]] = None


@dataclass
class Explanation:
    explanation: str
    follow_up_question: str
    follow_up_answer: str
    confidence: str

    def as_dict(self) -> Dict[str, str]:
        return {
            "explanation": self.explanation,
            "follow_up_question": self.follow_up_question,
            "follow_up_answer": self.follow_up_answer,
            "confidence": self.confidence,
        }


_JSON_CONTRACT = """Respond in this exact JSON format:
{
  "explanation": "Why the answer is wrong",
  "follow_up_question": "A simpler question to check understanding",
  "follow_up_answer": "The correct answer to the follow-up"
}"""


def _text_field(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _parse_explanation_json(response: Optional[str]) -> Optional[Explanation]:
    if not response:
        return None
    parsed = parse_json_response(response)
    if not parsed:
        return None

    explanation = _text_field(parsed, "explanation")
    question = _text_field(parsed, "follow_up_question", "followUpQuestion")
    answer = _text_field(parsed, "follow_up_answer", "followUpAnswer")
    if explanation and question and answer:
        return Explanation(explanation, question, answer, CONFIDENCE_MEDIUM)
    return None


def parse_follow_up(response: str) -> Optional[Tuple[str, str]]:
    """Parse a ``Question: ...`` / ``Answer: ...`` reply into a pair."""
    question_match = _FOLLOW_UP_QUESTION_RE.search(response)
    answer_match = _FOLLOW_UP_ANSWER_RE.search(response)
    if not question_match or not answer_match:
        return None

    question = question_match.group(1).strip()
    answer = answer_match.group(1).strip()
    if not question or not answer:
        return None
    return question, answer


def static_fallback(request: ExplanationRequest) -> Explanation:
    """Templated feedback used whenever generation is unavailable."""
    if request.misconception_description:
        explanation = request.static_explanation or (
            f'Your answer "{request.student_answer}" isn\'t quite right. '
            f"{request.misconception_description.rstrip('.')}. "
            f"The correct answer is {request.correct_answer}."
        )
        return Explanation(
            explanation=explanation,
            follow_up_question="Can you try a similar question? What would happen if you applied the correct approach?",
            follow_up_answer=request.correct_answer,
            confidence=CONFIDENCE_MEDIUM,
        )

    return Explanation(
        explanation=(
            f'Your answer "{request.student_answer}" isn\'t correct. '
            f"The right answer is {request.correct_answer}. "
            "Take a moment to think about the approach you used."
        ),
        follow_up_question="Let's try again: what is the correct answer to this question?",
        follow_up_answer=request.correct_answer,
        confidence=CONFIDENCE_LOW,
    )


def generate_follow_up_question(
    llm: LLMClient,
    original_question: str,
    correct_answer: str,
    misconception: str,
    topic: str,
) -> Optional[Tuple[str, str]]:
    """Generate one simpler follow-up question; None means use a static one."""
    prompt = f"""Create a simpler follow-up question to check if a student understands their misconception.

Original question: {original_question}
Correct answer: {correct_answer}
Student's misconception: {misconception}
Topic: {topic}

Create ONE simpler question that tests the same concept. Keep it very simple.

Respond in this exact format:
Question: [your follow-up question]
Answer: [the correct answer]"""

    response = llm.generate(prompt, max_tokens=100)
    if not response:
        return None
    return parse_follow_up(response)


def _rephrase_explanation(llm: LLMClient, request: ExplanationRequest) -> Optional[str]:
    prompt = f"""Given the following misconception description and student answer, rewrite the explanation in clear, neutral language suitable for a secondary school student.

Do not introduce new concepts.
Do not add teaching strategies.
Do not mention the model or AI.

Misconception description: {request.misconception_description}
Student answer: {request.student_answer}
Correct answer: {request.correct_answer}

Respond with only the explanation text, no JSON or formatting."""

    rephrased = llm.generate(prompt, max_tokens=150)
    if rephrased and len(rephrased) > MIN_REPHRASE_LENGTH:
        return rephrased
    return None


def _explain_with_misconception(llm: LLMClient, request: ExplanationRequest) -> Explanation:
    fallback = static_fallback(request)

    prompt = f"""You are helping a secondary school student understand why their answer is incorrect.

Question: {request.question}
Correct answer: {request.correct_answer}
Student's wrong answer: {request.student_answer}
Topic: {request.topic}
Misconception: {request.misconception_description}

Provide:
1. A brief, clear explanation (2-3 sentences, about 50 words) of why the answer is wrong, referencing the misconception. Use a calm, instructional tone.
2. One simple follow-up question to check if they understand the correct concept.
3. The correct answer to the follow-up question.

{_JSON_CONTRACT}"""

    combined = _parse_explanation_json(llm.generate(prompt, max_tokens=300))
    if combined:
        return combined

    rephrased = _rephrase_explanation(llm, request)
    if not rephrased:
        logger.info("Using static explanation for misconception %r", request.misconception_category)
        return fallback

    follow_up = generate_follow_up_question(
        llm,
        request.question,
        request.correct_answer,
        request.misconception_description or "",
        request.topic,
    )
    if follow_up:
        return Explanation(rephrased, follow_up[0], follow_up[1], CONFIDENCE_MEDIUM)

    return Explanation(
        explanation=rephrased,
        follow_up_question=fallback.follow_up_question,
        follow_up_answer=fallback.follow_up_answer,
        confidence=CONFIDENCE_MEDIUM,
    )


def _explain_without_misconception(llm: LLMClient, request: ExplanationRequest) -> Explanation:
    prompt = f"""You are helping a secondary school student understand why their answer is incorrect.

Question: {request.question}
Correct answer: {request.correct_answer}
Student's answer: {request.student_answer}
Topic: {request.topic}

Provide a brief, clear explanation of why the answer is wrong. Keep it to 2-3 sentences. Be encouraging, not critical.

Then provide one simple follow-up question to check understanding.

{_JSON_CONTRACT}"""

    generated = _parse_explanation_json(llm.generate(prompt, max_tokens=250))
    if generated:
        return generated

    logger.info("Using generic fallback explanation")
    return static_fallback(request)


def generate_explanation(llm: LLMClient, request: ExplanationRequest) -> Explanation:
    """Produce explanation, follow-up question and follow-up answer for a wrong answer."""
    if request.static_explanation and request.static_follow_up:
        question, answer = request.static_follow_up
        return Explanation(request.static_explanation, question, answer, CONFIDENCE_HIGH)

    if request.misconception_description:
        return _explain_with_misconception(llm, request)

    return _explain_without_misconception(llm, request)
