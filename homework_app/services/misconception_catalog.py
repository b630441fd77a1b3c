"""Predefined misconception catalog, topics and question templates.

Catalog entries are kept as ordered lists: the first entry of a topic is the
default choice when nothing better can be determined, so seeding order is
part of the grading behaviour.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from homework_app.models import Misconception, QuestionMisconceptionPattern
from sqlmodel import Session, select

logger = logging.getLogger(__name__)

GENERAL_TOPIC = "general"


@dataclass(frozen=True)
class CatalogEntry:
    topic: str
    category: str
    description: str
    teaching_suggestion: Optional[str] = None


PREDEFINED_MISCONCEPTIONS: List[CatalogEntry] = [
    # Mathematics - Fractions
    CatalogEntry(
        "fractions",
        "Adding fractions",
        "Adding numerators and denominators separately instead of finding a common denominator",
        "Review the concept of equivalent fractions and why common denominators are needed for addition",
    ),
    CatalogEntry(
        "fractions",
        "Comparing fractions",
        "Assuming larger denominators mean larger fractions",
        "Use visual models like fraction bars to compare fractions with different denominators",
    ),
    CatalogEntry(
        "fractions",
        "Multiplying fractions",
        "Trying to find common denominators when multiplying fractions",
        "Show that multiplying fractions is numerator times numerator over denominator times denominator",
    ),
    # Mathematics - Algebra
    CatalogEntry(
        "algebra",
        "Variable understanding",
        "Treating variables as labels rather than unknown quantities",
        "Use substitution exercises to reinforce that variables represent numbers",
    ),
    CatalogEntry(
        "algebra",
        "Equation solving",
        "Performing operations on one side of the equation without balancing",
        "Use a balance scale analogy to visualize maintaining equality",
    ),
    CatalogEntry(
        "algebra",
        "Order of operations",
        "Performing operations left to right without considering BIDMAS/PEMDAS",
        "Practice order of operations with clear step-by-step worked examples",
    ),
    CatalogEntry(
        "algebra",
        "Negative numbers",
        "Confusing rules for adding and multiplying negative numbers",
        "Use number lines and real-world contexts like temperature or debt",
    ),
    # Mathematics - Percentages
    CatalogEntry(
        "percentages",
        "Percentage calculation",
        "Adding percentages directly without converting to the same base",
        "Emphasize that percentages must be of the same whole to be added",
    ),
    CatalogEntry(
        "percentages",
        "Percentage increase/decrease",
        "Subtracting the percentage value from the original number instead of calculating the actual decrease",
        "Practice finding the percentage of a number first, then applying the change",
    ),
    # Science - Forces
    CatalogEntry(
        "forces",
        "Newton's laws",
        "Believing that constant motion requires constant force",
        "Demonstrate Newton's first law with friction-reduced examples",
    ),
    CatalogEntry(
        "forces",
        "Action-reaction pairs",
        "Thinking action-reaction forces act on the same object",
        "Use clear diagrams showing forces on different objects in an interaction",
    ),
    # Science - Energy
    CatalogEntry(
        "energy",
        "Energy conservation",
        "Believing energy is used up rather than transferred",
        "Trace energy through a system showing all transformations",
    ),
    CatalogEntry(
        "energy",
        "Heat and temperature",
        "Confusing heat (energy transfer) with temperature (measure of kinetic energy)",
        "Use examples of large cold objects vs small hot objects transferring heat",
    ),
    # Science - Electricity
    CatalogEntry(
        "electricity",
        "Current flow",
        "Thinking current is used up as it flows through a circuit",
        "Use the water pipe analogy to show current conservation",
    ),
    CatalogEntry(
        "electricity",
        "Series vs parallel",
        "Confusing how current and voltage behave in series vs parallel circuits",
        "Build both circuit types and measure current/voltage at different points",
    ),
    # English - Grammar
    CatalogEntry(
        "grammar",
        "Subject-verb agreement",
        "Using singular verbs with plural subjects or vice versa",
        "Practice identifying the subject and matching verb form",
    ),
    CatalogEntry(
        "grammar",
        "Tense consistency",
        "Shifting tenses within a paragraph without reason",
        "Review texts and identify/correct unnecessary tense shifts",
    ),
    # Catch-all for every subject
    CatalogEntry(
        GENERAL_TOPIC,
        "Procedural error",
        "Applied incorrect procedure or formula to solve the problem",
        "Review the correct procedure step by step",
    ),
    CatalogEntry(
        GENERAL_TOPIC,
        "Conceptual misunderstanding",
        "Misunderstood the underlying concept being tested",
        "Revisit the foundational concept with examples",
    ),
    CatalogEntry(
        GENERAL_TOPIC,
        "Calculation error",
        "Made an arithmetic or computational mistake",
        "Encourage checking work and using estimation to verify answers",
    ),
]

AVAILABLE_TOPICS: List[Dict[str, str]] = [
    {"value": "fractions", "label": "Fractions"},
    {"value": "algebra", "label": "Algebra"},
    {"value": "percentages", "label": "Percentages"},
    {"value": "forces", "label": "Forces (Physics)"},
    {"value": "energy", "label": "Energy (Physics)"},
    {"value": "electricity", "label": "Electricity (Physics)"},
    {"value": "grammar", "label": "Grammar (English)"},
    {"value": GENERAL_TOPIC, "label": "General"},
]

QUESTION_TEMPLATES: Dict[str, List[Dict[str, str]]] = {
    "fractions": [
        {"question": "What is 1/4 + 1/2?", "correct_answer": "3/4", "type": "short_answer"},
        {"question": "What is 2/3 × 3/4?", "correct_answer": "1/2", "type": "short_answer"},
        {"question": "Which is larger: 3/5 or 2/3?", "correct_answer": "2/3", "type": "short_answer"},
    ],
    "algebra": [
        {"question": "Solve for x: 2x + 5 = 11", "correct_answer": "3", "type": "short_answer"},
        {"question": "Simplify: 3(x + 2) - x", "correct_answer": "2x + 6", "type": "short_answer"},
        {"question": "What is the value of 3² + 4²?", "correct_answer": "25", "type": "short_answer"},
    ],
    "percentages": [
        {"question": "What is 25% of 80?", "correct_answer": "20", "type": "short_answer"},
        {
            "question": "A price increases from £50 to £60. What is the percentage increase?",
            "correct_answer": "20%",
            "type": "short_answer",
        },
        {"question": "What is 120% of 50?", "correct_answer": "60", "type": "short_answer"},
    ],
    "forces": [
        {
            "question": "If an object is moving at constant velocity, what is the net force acting on it?",
            "correct_answer": "0",
            "type": "short_answer",
        },
        {"question": "What unit is force measured in?", "correct_answer": "Newtons", "type": "short_answer"},
    ],
    "energy": [
        {"question": "What type of energy does a moving car have?", "correct_answer": "kinetic", "type": "short_answer"},
        {
            "question": "Energy cannot be created or destroyed, only ___",
            "correct_answer": "transferred",
            "type": "short_answer",
        },
    ],
    "electricity": [
        {"question": "What unit is electrical current measured in?", "correct_answer": "Amps", "type": "short_answer"},
        {
            "question": "In a series circuit, is current the same or different at all points?",
            "correct_answer": "same",
            "type": "short_answer",
        },
    ],
    "grammar": [
        {
            "question": "Choose the correct verb: The group of students (is/are) ready.",
            "correct_answer": "is",
            "type": "short_answer",
        },
        {"question": "Choose the correct verb: She (has/have) been waiting.", "correct_answer": "has", "type": "short_answer"},
    ],
}


def is_known_topic(topic: str) -> bool:
    return any(t["value"] == topic for t in AVAILABLE_TOPICS)


def seed_misconceptions(session: Session) -> int:
    """Insert the predefined catalog once. Returns the number of rows added."""
    existing = session.exec(select(Misconception)).first()
    if existing:
        logger.info("Misconceptions already seeded, skipping")
        return 0

    session.add_all(
        Misconception(
            topic=entry.topic,
            category=entry.category,
            description=entry.description,
            teaching_suggestion=entry.teaching_suggestion,
        )
        for entry in PREDEFINED_MISCONCEPTIONS
    )
    session.commit()
    logger.info("Seeded %d misconceptions", len(PREDEFINED_MISCONCEPTIONS))
    return len(PREDEFINED_MISCONCEPTIONS)


def list_for_topic(session: Session, topic: str) -> List[Misconception]:
    """Misconceptions of ``topic`` in catalog (insertion) order."""
    stmt = select(Misconception).where(Misconception.topic == topic).order_by(Misconception.id)
    return list(session.exec(stmt).all())


def list_patterns_for_question(
    session: Session, question_id: int
) -> List[Tuple[QuestionMisconceptionPattern, Misconception]]:
    """Author-defined patterns of a question joined to their misconception, in stored order."""
    stmt = (
        select(QuestionMisconceptionPattern, Misconception)
        .join(Misconception, QuestionMisconceptionPattern.misconception_id == Misconception.id)
        .where(QuestionMisconceptionPattern.question_id == question_id)
        .order_by(QuestionMisconceptionPattern.id)
    )
    return list(session.exec(stmt).all())
