"""ESG survey attached to a passport: question catalogue and validation."""

from __future__ import annotations

from typing import Mapping

from .errors import DomainValidationError

_LIKERT = ("very_high", "high", "medium", "low", "very_low")

SURVEY_QUESTIONS: dict[str, tuple[str, ...]] = {
    "environmentalImportance": _LIKERT,
    "travelFrequency": ("daily", "weekly", "monthly", "rarely", "never"),
    "ecoProductPurchase": _LIKERT,
    "recyclingPractice": _LIKERT,
    "energyConservation": _LIKERT,
    "policySupport": _LIKERT,
}


class InvalidSurveyResponse(DomainValidationError):
    pass


def validate_responses(responses: Mapping[str, str]) -> dict[str, str]:
    """Return a clean copy of *responses* or raise on unknown keys/options."""
    clean: dict[str, str] = {}
    for question, answer in responses.items():
        options = SURVEY_QUESTIONS.get(question)
        if options is None:
            raise InvalidSurveyResponse(f"Unknown survey question {question!r}")
        if answer not in options:
            raise InvalidSurveyResponse(
                f"Invalid answer {answer!r} for {question}; "
                f"expected one of {', '.join(options)}"
            )
        clean[question] = answer
    return clean


def is_complete(responses: Mapping[str, str]) -> bool:
    return all(q in responses for q in SURVEY_QUESTIONS)
