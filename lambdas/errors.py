from botocore.exceptions import ClientError

# provider error codes caused by what the caller sent
_CLIENT_CODES = {
    "CodeMismatchException",
    "ExpiredCodeException",
    "InvalidParameterException",
    "InvalidPasswordException",
    "UsernameExistsException",
    "AliasExistsException",
}

# provider throttling; worth retrying later
_THROTTLE_CODES = {
    "LimitExceededException",
    "TooManyRequestsException",
}

# provider error codes meaning "who are you?"
_AUTH_CODES = {
    "NotAuthorizedException",
    "UserNotFoundException",
    "UserNotConfirmedException",
    "PasswordResetRequiredException",
}


class LeaderboardError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LeaderboardError):
    """Missing or malformed caller input."""
    status_code = 400


class IdentityError(LeaderboardError):
    """Token absent, invalid, expired or rejected. Re-authenticate, don't retry."""
    status_code = 401


class ProviderError(LeaderboardError):
    """The identity provider failed for a reason that is not the caller's."""
    status_code = 502


class StorageError(LeaderboardError):
    """The score store could not complete a read or write."""
    status_code = 500
    public_message = "Score storage is unavailable, please try again later"


def error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def from_provider_error(exc: ClientError) -> LeaderboardError:
    code = error_code(exc)
    message = exc.response.get("Error", {}).get("Message") or code or "Identity provider error"
    if code in _CLIENT_CODES:
        return ValidationError(message)
    if code in _AUTH_CODES:
        return IdentityError(message)
    if code in _THROTTLE_CODES:
        return ProviderError("Too many requests to the identity provider, please retry later")
    return ProviderError("Identity provider is unavailable")
