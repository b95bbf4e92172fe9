# tools/errors.py
"""
VitaFlow — Error Taxonomy
=========================
Every failure raised by the tools layer derives from VitaFlowError.
Agents catch these and turn them into status dictionaries; the API maps
them to HTTP status codes.
"""


class VitaFlowError(Exception):
    """Base class for recoverable VitaFlow failures."""

    error_type = "vitaflow_error"


class ParseFailure(VitaFlowError):
    """Food input did not match '<quantity> [unit] [de] <food>'."""

    error_type = "parse_failure"
    EXPECTED_FORMAT = "Try '200g arroz' or '1 banana'"

    def __init__(self, text: str, reason: str = "Invalid format"):
        self.text = text
        super().__init__(f"{reason}. {self.EXPECTED_FORMAT}")


class NutritionLookupFailed(VitaFlowError):
    """Neither the local table nor any remote backend produced macros."""

    error_type = "nutrition_lookup_failed"


class LookupCancelled(VitaFlowError):
    """Caller abandoned an in-flight remote request."""

    error_type = "lookup_cancelled"


class MalformedResponse(VitaFlowError):
    """Generated text did not contain a parseable JSON payload."""

    error_type = "malformed_response"

    def __init__(self, raw_text: str):
        self.raw_text = raw_text
        preview = (raw_text or "")[:80].replace("\n", " ")
        super().__init__(f"No JSON payload found in response: {preview!r}")


class GenerationFailed(VitaFlowError):
    """Every configured generative backend failed."""

    error_type = "generation_failed"

    def __init__(self, message: str, attempts=None):
        self.attempts = attempts or []
        super().__init__(message)


class PersistenceFailure(VitaFlowError):
    """A store read or write did not complete."""

    error_type = "persistence_failure"


class InvariantViolation(VitaFlowError):
    """Invalid data reached the profile-edit boundary."""

    error_type = "invariant_violation"


__all__ = [
    "VitaFlowError",
    "ParseFailure",
    "NutritionLookupFailed",
    "LookupCancelled",
    "MalformedResponse",
    "GenerationFailed",
    "PersistenceFailure",
    "InvariantViolation",
]
