from app.db.models.submission import (
    Choice,
    ChoiceUpdate,
    RiskLevel,
    Submission,
    SubmissionInput,
)


__all__ = [
    "Choice",
    "ChoiceUpdate",
    "RiskLevel",
    "Submission",
    "SubmissionInput",
]
