from typing import Optional


class KisanError(Exception):
    pass


class CompletionError(KisanError):
    """Upstream chat-completion call failed or returned nothing usable."""


class ModelCapabilityError(CompletionError):
    """The configured model cannot take image input."""


class EmptyReplyError(CompletionError):
    """The call succeeded but the model returned no text."""


class AnalysisParseError(KisanError):
    pass


class AnalysisValidationError(KisanError):
    pass


class APIError(KisanError):
    """Rendered by the app as {"error": ..., "details": ...} with status_code."""

    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
