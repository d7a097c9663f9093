"""
Error taxonomy for ReplyBot.

None of these are fatal to the host process. Each one is recovered at a
component seam and degrades to "no reply was sent" or "reply marked unsent".
"""


class ReplyBotError(Exception):
    """Base class for all ReplyBot errors."""


class ConfigurationError(ReplyBotError):
    """Missing or invalid configuration detected at startup."""


class GenerationFailure(ReplyBotError):
    """The AI text generator failed, timed out or returned nothing usable."""


class DispatchFailure(ReplyBotError):
    """The outbound sink failed to deliver a reply."""


class PersistenceFailure(ReplyBotError):
    """A durable write (e.g. stats flush) failed."""
