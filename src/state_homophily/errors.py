"""Exception types raised by the loader, network builder, and coefficient functions."""


class HomophilyError(Exception):
    """Base class for all analysis errors."""


class InputFormatError(HomophilyError, ValueError):
    """An input table cannot be read or lacks a required column."""


class MissingStateError(HomophilyError, KeyError):
    """A state is unknown, or absent from one of the joined tables."""

    def __init__(self, msg: str, states: list[str] | None = None) -> None:
        super().__init__(msg)
        self.states = sorted(states or [])

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class DuplicatePairError(HomophilyError, ValueError):
    """The same directed pair carries more than one similarity value."""


class DegenerateInputError(HomophilyError, ValueError):
    """The input cannot produce a meaningful threshold or coefficient."""


class StateCountError(HomophilyError, ValueError):
    """The node set does not contain the expected number of states."""
