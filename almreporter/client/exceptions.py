"""
Exceptions raised by the ALM REST client.

Each exception includes:
- Clear error message
- Endpoint context and HTTP status code when known
- Suggested user action
- Original exception preserved for debugging
"""

from typing import Optional


class ALMClientError(Exception):
    """
    Base exception for all REST client errors.

    Used directly for generic API errors that don't fit a more specific
    category.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        original_exception: Optional[Exception] = None,
        suggested_action: Optional[str] = None,
    ):
        self.message = message
        self.endpoint = endpoint
        self.status_code = status_code
        self.original_exception = original_exception
        self.suggested_action = suggested_action

        error_parts = [message]

        if status_code:
            error_parts.append(f"HTTP status: {status_code}")

        if endpoint:
            error_parts.append(f"Endpoint: {endpoint}")

        if suggested_action:
            error_parts.append(f"Action: {suggested_action}")

        if original_exception:
            error_parts.append(f"Original error: {str(original_exception)}")

        super().__init__(" | ".join(error_parts))


class InvalidAPIAddressError(ALMClientError):
    """The REST API address cannot be parsed into a usable URL."""

    def __init__(self, message: str, endpoint: Optional[str] = None):
        super().__init__(
            message=message,
            endpoint=endpoint,
            suggested_action="The REST API address must start with http:// or https://",
        )


class APITimeoutError(ALMClientError):
    """
    Raised when a request to the REST API times out.

    This typically indicates:
    - Slow network connection
    - The REST API server is under heavy load
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        timeout_duration: Optional[float] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.timeout_duration = timeout_duration

        suggested_action = "Check network connectivity and retry"
        if timeout_duration:
            suggested_action += f" (timeout after {timeout_duration}s)"

        super().__init__(
            message=message,
            endpoint=endpoint,
            original_exception=original_exception,
            suggested_action=suggested_action,
        )


class APIConnectionError(ALMClientError):
    """
    Raised when the REST API cannot be reached or answers with an
    unexpected error status.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        original_exception: Optional[Exception] = None,
        suggested_action: Optional[str] = None,
    ):
        if suggested_action is None and status_code is None:
            suggested_action = "Check network connectivity and verify the REST API server is running"

        super().__init__(
            message=message,
            endpoint=endpoint,
            status_code=status_code,
            original_exception=original_exception,
            suggested_action=suggested_action,
        )


class RestrictedEnvironmentError(APIConnectionError):
    """
    Raised when a connection failure looks like a network restriction
    (DNS, proxy or firewall) rather than a server problem.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        original_exception: Optional[Exception] = None,
        restriction_type: Optional[str] = None,
    ):
        self.restriction_type = restriction_type

        if restriction_type == "dns":
            suggested_action = (
                "DNS resolution failed. Verify the REST API host name "
                "or contact IT to make it resolvable from build agents"
            )
        elif restriction_type == "proxy":
            suggested_action = (
                "Proxy connection failed. Check the agent's proxy settings"
            )
        elif restriction_type == "firewall":
            suggested_action = (
                "Connection refused. Verify the REST API port is open "
                "from build agents"
            )
        else:
            suggested_action = (
                "Network connection failed. This may be a firewall or proxy "
                "restriction between the build agent and the REST API server"
            )

        super().__init__(
            message=message,
            endpoint=endpoint,
            original_exception=original_exception,
            suggested_action=suggested_action,
        )

    @classmethod
    def detect(
        cls,
        connection_error: Exception,
        endpoint: Optional[str] = None,
    ) -> "RestrictedEnvironmentError":
        """
        Classify a connection error by inspecting its message.

        Args:
            connection_error: The original connection exception
            endpoint: API endpoint that failed

        Returns:
            RestrictedEnvironmentError with the detected restriction type
        """
        error_msg = str(connection_error).lower()

        if any(
            pattern in error_msg
            for pattern in [
                "name resolution",
                "nodename nor servname provided",
                "getaddrinfo failed",
                "name or service not known",
            ]
        ):
            return cls("DNS resolution failed", endpoint, connection_error, "dns")

        if any(
            pattern in error_msg
            for pattern in ["proxy", "407 proxy authentication", "tunnel connection failed"]
        ):
            return cls("Proxy connection failed", endpoint, connection_error, "proxy")

        if "connection refused" in error_msg or "errno 111" in error_msg:
            return cls("Connection refused", endpoint, connection_error, "firewall")

        return cls("Network connection failed", endpoint, connection_error, "unknown")


class AuthenticationError(ALMClientError):
    """
    Raised when the REST API rejects the credentials.

    401 and 403 come from bad credentials or licensing, 500 from a
    malformed API key.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        original_exception: Optional[Exception] = None,
    ):
        if status_code == 403:
            suggested_action = "Verify the user has permission to access this project"
        else:
            suggested_action = "Verify the connection credentials are valid and not expired"

        super().__init__(
            message=message,
            endpoint=endpoint,
            status_code=status_code,
            original_exception=original_exception,
            suggested_action=suggested_action,
        )


class APINotFoundError(ALMClientError):
    """Raised when a REST API resource does not exist (404)."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            endpoint=endpoint,
            status_code=404,
            original_exception=original_exception,
            suggested_action="Verify the project, suite and REST API address are correct",
        )


class APIServerError(ALMClientError):
    """Raised when the REST API returns a 5xx error."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            endpoint=endpoint,
            status_code=status_code,
            original_exception=original_exception,
            suggested_action="The REST API server is experiencing issues. Check the server log",
        )


__all__ = [
    "ALMClientError",
    "InvalidAPIAddressError",
    "APITimeoutError",
    "APIConnectionError",
    "RestrictedEnvironmentError",
    "AuthenticationError",
    "APINotFoundError",
    "APIServerError",
]
