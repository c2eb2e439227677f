from __future__ import annotations

from typing import Optional


class AutomationError(Exception):
    """Base class for failures of an automation run.

    Carries the section and logical field key that were being worked on so a
    failed run can be diagnosed from the error alone.
    """

    kind = "AutomationError"

    def __init__(self, message: str, field_key: Optional[str] = None, section: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field_key = field_key
        self.section = section


class InputInvalid(AutomationError):
    kind = "InputInvalid"


class ElementNotFound(AutomationError):
    kind = "ElementNotFound"

    def __init__(self, field_key: str, selector: str) -> None:
        super().__init__(f"No element for {field_key} ({selector})", field_key=field_key)
        self.selector = selector


class AmbiguousElement(AutomationError):
    kind = "AmbiguousElement"

    def __init__(self, field_key: str, selector: str, count: int) -> None:
        super().__init__(f"{count} elements match {field_key} ({selector})", field_key=field_key)
        self.selector = selector
        self.count = count


class MenuTimeout(AutomationError):
    kind = "MenuTimeout"

    def __init__(self, field_key: str, timeout_ms: int) -> None:
        super().__init__(f"Menu for {field_key} did not open within {timeout_ms}ms", field_key=field_key)
        self.timeout_ms = timeout_ms


class FillFailed(AutomationError):
    kind = "FillFailed"

    def __init__(self, section: str, cause: BaseException) -> None:
        field_key = getattr(cause, "field_key", None)
        super().__init__(f"Section {section} failed: {cause}", field_key=field_key, section=section)
        self.cause = cause


class ConfirmationFailed(AutomationError):
    kind = "ConfirmationFailed"


class SubmitFailed(AutomationError):
    kind = "SubmitFailed"


class ReceiptNotFound(AutomationError):
    """The submit click went through but no receipt marker appeared.

    The remote side may already hold the submission; an operator has to check
    before anything is sent again.
    """

    kind = "ReceiptNotFound"


class SessionError(AutomationError):
    kind = "SessionError"


class InvalidTransition(AutomationError):
    kind = "InvalidTransition"
