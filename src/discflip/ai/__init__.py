"""AI components: move heuristics and headless self-play."""

from .agent import AIAgent, Candidate, Policy, annotate  # noqa: F401
from .selfplay import SelfPlayResult, play_game  # noqa: F401
