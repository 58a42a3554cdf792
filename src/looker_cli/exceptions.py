"""looker-cli exceptions."""


class LookerCliError(Exception):
    """Base exception for looker-cli errors."""

    pass


class ConfigurationError(LookerCliError):
    """Raised when required OAuth client settings are missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Missing {' or '.join(missing)} environment variable(s). "
            "Set them in your environment or in a .env file."
        )


class TokenError(LookerCliError):
    """Raised when there's an issue with the OAuth token."""

    pass


class AuthorizationCancelled(TokenError):
    """Raised when no authorization code is entered."""

    def __init__(self) -> None:
        super().__init__("No authorization code provided; aborting.")
