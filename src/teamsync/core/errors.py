"""Exception hierarchy for teamsync."""


class TeamError(Exception):
    """Base class for all teamsync errors."""
    pass


class GitError(TeamError):
    """Custom exception for Git-related errors."""
    pass


class StatusClassificationError(TeamError):
    """A status value that no classification rule knows about."""
    pass


class SessionStateError(TeamError):
    """An operation was attempted in a session state that does not allow it."""
    pass


class ConfigError(TeamError):
    """Settings could not be read or are invalid."""
    pass
