"""
SurveyMonkey response formatting.

A raw response only carries question and choice ids; the survey "details"
document (the catalog) supplies headings and choice labels. Formatting joins
the two into flat question/answer pairs for display and for name/age
extraction.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger('services.survey_format')

NAME_HEADING = 'provide your name'
AGE_HEADING = 'age'

# Leading number, e.g. "25", "25.5 years", " -3"
_LEADING_NUMBER = re.compile(r'^\s*([-+]?(?:\d+\.?\d*|\.\d+))')


@dataclass
class CatalogQuestion:
    id: str
    heading: str
    type: str = ''
    choices: Dict[str, str] = field(default_factory=dict)


@dataclass
class FormattedAnswer:
    question_text: str
    answer_text: str
    question_type: str = ''

    def to_dict(self) -> Dict[str, str]:
        return {
            'questionText': self.question_text,
            'answerText': self.answer_text,
            'questionType': self.question_type,
        }


class QuestionCatalog:
    """Question id → heading/type/choice labels for a single survey."""

    def __init__(self, questions: Dict[str, CatalogQuestion]):
        self.questions = questions

    def get(self, question_id) -> Optional[CatalogQuestion]:
        return self.questions.get(question_id)

    def __len__(self):
        return len(self.questions)

    @classmethod
    def from_details(cls, details: Dict[str, Any]) -> 'QuestionCatalog':
        questions = {}
        for page in details.get('pages') or []:
            for q in page.get('questions') or []:
                answers = q.get('answers') or {}
                choices = {
                    c.get('id'): c.get('text', '')
                    for c in answers.get('choices') or []
                    if c.get('id')
                }
                questions[q.get('id')] = CatalogQuestion(
                    id=q.get('id'),
                    heading=_question_heading(q),
                    type=q.get('family') or q.get('type') or '',
                    choices=choices,
                )
        return cls(questions)


def _question_heading(question: Dict[str, Any]) -> str:
    if question.get('heading'):
        return question['heading']
    headings = question.get('headings') or []
    if headings and headings[0].get('heading'):
        return headings[0]['heading']
    return question.get('question') or 'Untitled Question'


def _answer_text(answer: Dict[str, Any], question: CatalogQuestion) -> str:
    if answer.get('text'):
        return answer['text']
    choice_id = answer.get('choice_id')
    if choice_id:
        label = question.choices.get(choice_id)
        return label if label else f'Choice ID: {choice_id}'
    return ''


def format_survey_response(catalog: QuestionCatalog, response: Dict[str, Any]) -> List[FormattedAnswer]:
    """Flatten a response into question/answer pairs, in survey order."""
    formatted = []
    for page in response.get('pages') or []:
        for q in page.get('questions') or []:
            question = catalog.get(q.get('id'))
            if question is None:
                logger.warning("Question %s not found in survey details", q.get('id'))
                continue
            for answer in q.get('answers') or []:
                text = _answer_text(answer, question)
                if not text:
                    continue
                formatted.append(FormattedAnswer(
                    question_text=question.heading,
                    answer_text=text,
                    question_type=question.type,
                ))
    return formatted


def parse_leading_number(text: str) -> Optional[float]:
    """Number at the start of `text`, or None."""
    match = _LEADING_NUMBER.match(text or '')
    return float(match.group(1)) if match else None


def extract_name_and_age(formatted: List[FormattedAnswer], fallback_name: str = '') -> Tuple[str, Optional[float]]:
    """
    Derive a participant's name and age from formatted answers.

    The first two "provide your name" answers are first and last name. Age
    comes from the first heading mentioning "age" whose answer starts with a
    number. Falls back to `fallback_name` when no name question was answered.
    """
    first_name = last_name = ''
    name_count = 0
    age = None
    for item in formatted:
        heading = item.question_text.lower()
        if NAME_HEADING in heading:
            name_count += 1
            if name_count == 1:
                first_name = item.answer_text
            elif name_count == 2:
                last_name = item.answer_text
        if age is None and AGE_HEADING in heading:
            age = parse_leading_number(item.answer_text)

    if first_name or last_name:
        return f'{first_name} {last_name}'.strip(), age
    return fallback_name, age
