class AturUangError(Exception):
    """Base class for errors raised by the expense core."""


class ExtractionError(AturUangError):
    """The model could not turn a user turn into expense records."""


class TransportError(ExtractionError):
    """The remote model call failed (network, auth, quota)."""


class EmptyResponseError(ExtractionError):
    """The remote call succeeded but returned no content."""


class MalformedOutputError(ExtractionError):
    """The reply held no usable JSON or an expense failed validation."""


class EmptyExtractionError(ExtractionError):
    """Valid JSON came back but it listed no expenses."""


class NotFoundError(AturUangError):
    """No stored record matches the given id."""


class AliasTakenError(AturUangError):
    """The requested alias already belongs to another account."""
