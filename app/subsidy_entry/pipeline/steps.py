from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple

from ..automation.errors import InvalidTransition


class FormStep(str, Enum):
    COMPANY_INFO = "companyInfo"
    ADDRESS = "address"
    EMPLOYEE = "employee"
    CONTACT = "contact"
    CONFIRMATION = "confirmation"
    COMPLETION = "completion"


# (previous, next) for each step of the native form.
STEP_TRANSITIONS: Dict[FormStep, Tuple[Optional[FormStep], Optional[FormStep]]] = {
    FormStep.COMPANY_INFO: (None, FormStep.ADDRESS),
    FormStep.ADDRESS: (FormStep.COMPANY_INFO, FormStep.EMPLOYEE),
    FormStep.EMPLOYEE: (FormStep.ADDRESS, FormStep.CONTACT),
    FormStep.CONTACT: (FormStep.EMPLOYEE, FormStep.CONFIRMATION),
    FormStep.CONFIRMATION: (FormStep.CONTACT, FormStep.COMPLETION),
    FormStep.COMPLETION: (None, None),
}

# Record paths validated before leaving each input step.
STEP_FIELDS: Dict[FormStep, Tuple[str, ...]] = {
    FormStep.COMPANY_INFO: ("entityType", "company", "representative"),
    FormStep.ADDRESS: ("primaryAddress", "secondaryAddress"),
    FormStep.EMPLOYEE: ("workerCount", "applicationMethod"),
    FormStep.CONTACT: ("contact", "agentName", "applicationReason"),
}


def parse_step(value: str) -> FormStep:
    try:
        return FormStep(value)
    except ValueError:
        raise InvalidTransition(f"Unknown form step: {value}") from None


def next_step(step: FormStep) -> FormStep:
    following = STEP_TRANSITIONS[step][1]
    if following is None:
        raise InvalidTransition(f"No step after {step.value}")
    return following


def previous_step(step: FormStep) -> FormStep:
    preceding = STEP_TRANSITIONS[step][0]
    if preceding is None:
        raise InvalidTransition(f"No step before {step.value}")
    return preceding


def go_to(current: FormStep, target: FormStep) -> FormStep:
    # Completion is only reachable through a submission.
    if current == FormStep.COMPLETION or target == FormStep.COMPLETION:
        raise InvalidTransition(f"{current.value} -> {target.value} is not allowed")
    return target
