"""
Error kinds raised by the cup engine.
"""


class TournamentError(Exception):
    """Base class for every engine error."""


class InvalidGroupSize(TournamentError, ValueError):
    """A round-robin schedule was requested for fewer than 2 participants."""

    def __init__(self, size):
        self.size = size
        super().__init__(f"A group needs at least 2 participants, got {size}")


class InvalidSeedingPosition(TournamentError, ValueError):
    """A seeding position string is not of the form group_<Letter>_<N>."""

    def __init__(self, position):
        self.position = position
        super().__init__(f"Invalid seeding position: {position!r}")


class DuplicatePositionError(TournamentError, ValueError):
    """The same group position was assigned to more than one match slot."""

    def __init__(self, position, slots):
        self.position = position
        self.slots = slots
        super().__init__(f"Position {position} is assigned to several slots: {slots}")


class IncompleteSeedingError(TournamentError, ValueError):
    """The seeding plan does not fill the first knockout round exactly."""

    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Seeding fills {actual} slots, expected {expected}")


class InsufficientScoreData(TournamentError):
    """A match cannot be resolved yet because score facts are missing."""

    def __init__(self, match_id, missing):
        self.match_id = match_id
        self.missing = missing
        super().__init__(f"Match {match_id} is missing score facts for {missing}")


class MalformedBracketTopology(TournamentError):
    """A completed match has no valid place to send its winner."""


class ResolutionCancelled(TournamentError):
    """The caller cancelled a resolution pass; nothing was written."""
