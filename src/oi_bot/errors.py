"""Exception types raised across the ingest and worker processes."""


class OiError(Exception):
    """Base class for errors raised by oi_bot itself."""


class SignatureVerificationError(OiError):
    """The inbound request could not be proven to come from Slack."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class CallbackDeliveryError(OiError):
    """The response_url answered with something other than 200 OK."""

    def __init__(self, url: str, status_line: str):
        super().__init__(f"POST to response_url failed because {status_line}")
        self.url = url
        self.status_line = status_line


class CompletionError(OiError):
    """The completion provider returned a response we cannot use."""
