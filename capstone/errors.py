from __future__ import annotations


class CapstoneError(Exception):
    """Base class for errors raised by the capstone core."""


class InvalidInput(CapstoneError):
    """A call received input it cannot work with (empty profile, bad difficulty)."""


class FavoriteLocked(InvalidInput):
    def __init__(self, position: int, project_id: int | str):
        super().__init__(f"Position {position} holds favorited project {project_id}; unfavorite it first.")
        self.position = position
        self.project_id = project_id


class NoMoreCandidates(CapstoneError):
    """The candidate source has nothing new to offer."""


class SourceUnavailable(CapstoneError):
    """An external collaborator failed to answer."""
