"""Domain errors."""


class ShipPostError(Exception):
    """Base class for all domain errors."""


class ValidationError(ShipPostError):
    """Malformed input, e.g. missing required fields or content over the limit."""


class ConflictError(ShipPostError):
    """Resource already exists, e.g. repository bound to another project."""


class NotFoundError(ShipPostError):
    """Referenced project or draft does not exist."""


class InvalidTransitionError(ShipPostError):
    """Approval action not allowed from the draft's current state."""


class GenerationFailure(ShipPostError):
    """Text generation failed or returned unusable output."""


class PublishFailure(ShipPostError):
    """Publish target rejected or failed to accept a post."""


class ChannelDeliveryFailure(ShipPostError):
    """Approval channel message could not be delivered or updated."""
