"""
Sign-off error types.

Validation errors are the caller's fault and map to HTTP 400; everything
else is reported as a generic server failure.
"""


class SignoffError(Exception):
    """Base class for failures surfaced to the submitting client."""
    status_code = 500
    public_message = "Server error"


class ValidationError(SignoffError):
    """The submission was rejected before rendering began."""
    status_code = 400

    @property
    def public_message(self) -> str:
        return str(self)


class MalformedPayload(ValidationError):
    """Request body is not a JSON object."""


class MissingRecipient(ValidationError):
    """No destination address after applying the default recipient."""


class RenderFailure(SignoffError):
    """Unexpected failure while composing the PDF."""
    public_message = "Failed to render sign-off document"


class DispatchFailure(SignoffError):
    """The mail transport rejected or failed to deliver the message."""
    public_message = "Failed to send sign-off e-mail"
