"""Error taxonomy for the scheduling core."""


class ReciteError(Exception):
    """Base class for every error raised by recite."""


class InvalidQualityRating(ReciteError, ValueError):
    """Quality was not an integer in the 0-5 range."""

    def __init__(self, quality: object):
        self.quality = quality
        super().__init__(f"Quality must be an integer between 0 and 5, got {quality!r}")


class SessionNotActive(ReciteError):
    """An outcome was recorded while no review session was active."""


class StorageFailure(ReciteError):
    """The progress store could not complete a read or write."""


class InvalidPracticeAttempt(ReciteError, ValueError):
    """A practice attempt carried out-of-range accuracy or word counts."""
