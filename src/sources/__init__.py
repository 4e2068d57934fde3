"""Source adapters - async only."""

from .activitywatch import ActivityWatchClient, WindowEvent
from .fatebook import FatebookClient, Question
from .focusmate import FocusmateClient, Session
from .github import Commit, GitHubClient
from .marvin import MarvinClient, MarvinCredentials

__all__ = [
    "ActivityWatchClient",
    "WindowEvent",
    "FatebookClient",
    "Question",
    "FocusmateClient",
    "Session",
    "GitHubClient",
    "Commit",
    "MarvinClient",
    "MarvinCredentials",
]
