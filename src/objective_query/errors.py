"""Package specific exception hierarchy."""


class ObjectiveQueryError(Exception):
    """Base exception for objective_query package."""


class ConfigError(ObjectiveQueryError):
    """Raised when user configuration is invalid or incomplete."""

    def __init__(self, message: str, field: str | None = None) -> None:
        prefix = f"{field}: " if field is not None else ""
        super().__init__(f"{prefix}{message}")
        self.field = field


class SchemaValidationError(ObjectiveQueryError):
    """Raised when a document does not satisfy a JSON schema."""

    def __init__(self, message: str, path: str = "$") -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class ParseError(ObjectiveQueryError):
    """Raised when a completion cannot be turned into the declared response format."""

    def __init__(self, raw_text: str, cause: BaseException) -> None:
        super().__init__(f"Failed to parse model output: {cause}")
        self.raw_text = raw_text
        self.cause = cause


class ProviderError(ObjectiveQueryError):
    """Represents provider-specific HTTP or API errors."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        suffix = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"{provider}: {message}{suffix}")
        self.provider = provider
        self.status_code = status_code
