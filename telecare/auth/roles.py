"""User roles and the expert-role predicate used across routing and booking."""

import enum


class UserRole(str, enum.Enum):
    PATIENT = "patient"
    THERAPIST = "therapist"
    RELATIONSHIP_EXPERT = "relationship_expert"
    FINANCIAL_EXPERT = "financial_expert"
    DATING_COACH = "dating_coach"
    HEALTH_WELLNESS_COACH = "health_wellness_coach"


EXPERT_ROLES = frozenset(role for role in UserRole if role is not UserRole.PATIENT)

PATIENT_HOME = "/patient"
EXPERT_HOME = "/therapist"


def parse_role(value: "str | UserRole") -> UserRole:
    if isinstance(value, UserRole):
        return value
    return UserRole(value.strip().lower())


def is_expert_role(role: "str | UserRole | None") -> bool:
    if role is None:
        return False
    try:
        return parse_role(role) in EXPERT_ROLES
    except ValueError:
        return False


def home_path(role: "str | UserRole | None") -> str:
    return EXPERT_HOME if is_expert_role(role) else PATIENT_HOME
