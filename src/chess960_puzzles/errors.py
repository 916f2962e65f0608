"""Exception types raised at the edges of the generation pipeline.

Engine trouble and failed quality gates inside an attempt are not
exceptions from the caller's point of view: generators turn them into
rejections. Only configuration mistakes and storage failures surface.
"""


class GenerationError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(GenerationError, ValueError):
    """Invalid option or option combination, raised before any work starts."""


class OutOfRangeError(ConfigurationError):
    """Chess960 position number outside 1..960."""


class PersistenceError(GenerationError):
    """The candidate store could not read or write a record."""


class CandidateRejected(GenerationError):
    """An attempt produced no usable candidate.

    Raised inside generators and converted to a rejection reason; never
    propagated out of ``generate()``.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
