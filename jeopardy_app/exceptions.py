class JeopardyException(Exception):
    """Base exception for the jeopardy board."""
    pass


class ConfigurationError(JeopardyException):
    """Raised when there's a configuration error."""
    pass


class ProviderError(JeopardyException):
    """Raised when the trivia data provider can't be reached or answers with an error."""

    def __init__(self, message, category_id=None, status_code=None):
        super().__init__(message)
        self.category_id = category_id
        self.status_code = status_code


class InvalidCategoryError(ProviderError):
    """Raised when the provider answers with something that isn't a category."""
    pass


class AcquisitionError(JeopardyException):
    """Raised when a board could not be acquired."""
    pass


class AcquisitionAttemptsExhausted(AcquisitionError):
    """Raised when the id acquisition attempt budget runs out."""
    pass


class BoardStateError(JeopardyException):
    """Raised when a board breaks the board invariants."""
    pass


class BoardLoadingError(JeopardyException):
    """Raised when a board is requested while another one is still loading."""
    pass
