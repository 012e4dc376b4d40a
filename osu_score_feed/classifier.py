"""Suspicious-play heuristic."""

from rich.markup import escape

from osu_score_feed import console
from osu_score_feed.hub import Broadcaster
from osu_score_feed.models import FeedState, Score

SUSPICIOUS_MOD = "FL"
SUSPICIOUS_PP = 100.0


class SuspicionClassifier:
    """Flags scores set with ``mod`` and more than ``pp_threshold`` pp.

    Each flagged score id is recorded and announced once.
    """

    def __init__(
        self,
        state: FeedState,
        hub: Broadcaster | None = None,
        mod: str = SUSPICIOUS_MOD,
        pp_threshold: float = SUSPICIOUS_PP,
    ):
        self.state = state
        self.hub = hub
        self.mod = mod.upper()
        self.pp_threshold = pp_threshold

    def is_suspicious(self, score: Score) -> bool:
        return self.mod in {m.upper() for m in score.mods} and score.pp > self.pp_threshold

    def classify(self, score: Score) -> bool:
        if not self.is_suspicious(score):
            return False

        if not self.state.has_suspicious(score.id):
            self.state.suspicious.append(score)
            console.print(f"[yellow]Suspicious score {score.id}: {score.pp:.0f}pp +{escape(''.join(score.mods))}[/yellow]")
            if self.hub is not None:
                self.hub.publish_suspicious(score)
        return True
