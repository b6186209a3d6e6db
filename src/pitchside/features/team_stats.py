"""
Per-team aggregate statistics.

A single pass over the match corpus increments both teams' counters, routing
goals and wins to the home or away sub-counters depending on which side the
team played. Teams with no observed matches are simply absent from the
result; callers must treat a missing team as an error, not a default.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Mapping

from pitchside.data.schema import MatchRecord
from pitchside.utils.logging_utils import get_logger

logger = get_logger(__name__)

# Serialized key -> attribute name
_KEY_TO_FIELD: Dict[str, str] = {
    "teamId": "team_id",
    "matchesPlayed": "matches_played",
    "wins": "wins",
    "draws": "draws",
    "losses": "losses",
    "goalsScored": "goals_scored",
    "goalsConceded": "goals_conceded",
    "homeMatchesPlayed": "home_matches_played",
    "homeWins": "home_wins",
    "awayMatchesPlayed": "away_matches_played",
    "awayWins": "away_wins",
}

# Key names used by older metadata documents
_LEGACY_KEYS: Dict[str, str] = {
    "matches": "matchesPlayed",
    "homeMatches": "homeMatchesPlayed",
    "awayMatches": "awayMatchesPlayed",
}


@dataclass
class TeamStats:
    """Aggregate counters for one team over a training corpus."""

    team_id: int
    matches_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_scored: int = 0
    goals_conceded: int = 0
    home_matches_played: int = 0
    home_wins: int = 0
    away_matches_played: int = 0
    away_wins: int = 0

    def record(self, goals_for: int, goals_against: int, is_home: bool) -> None:
        """Fold one match, seen from this team's side, into the counters."""
        self.matches_played += 1
        self.goals_scored += goals_for
        self.goals_conceded += goals_against

        won = goals_for > goals_against
        if won:
            self.wins += 1
        elif goals_for == goals_against:
            self.draws += 1
        else:
            self.losses += 1

        if is_home:
            self.home_matches_played += 1
            self.home_wins += int(won)
        else:
            self.away_matches_played += 1
            self.away_wins += int(won)

    @property
    def win_rate(self) -> float:
        return self.wins / max(self.matches_played, 1)

    def check_invariants(self) -> None:
        """
        Raise ValueError if the counters are inconsistent.

        Every count is non-negative, wins + draws + losses equals matches
        played, and venue wins never exceed venue matches.
        """
        counts = asdict(self)
        counts.pop("team_id")
        negative = [k for k, v in counts.items() if v < 0]
        if negative:
            raise ValueError(f"Team {self.team_id}: negative counters {negative}")
        if self.wins + self.draws + self.losses != self.matches_played:
            raise ValueError(
                f"Team {self.team_id}: wins+draws+losses != matches_played"
            )
        if self.home_wins > self.home_matches_played:
            raise ValueError(f"Team {self.team_id}: home_wins > home_matches_played")
        if self.away_wins > self.away_matches_played:
            raise ValueError(f"Team {self.team_id}: away_wins > away_matches_played")

    def to_dict(self) -> Dict[str, int]:
        return {key: getattr(self, attr) for key, attr in _KEY_TO_FIELD.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], team_id: int | None = None) -> "TeamStats":
        """
        Rebuild TeamStats from a metadata document entry.

        Missing counters default to 0. Older documents that use ``matches``
        / ``homeMatches`` / ``awayMatches`` are accepted as well.
        """
        normalized = {_LEGACY_KEYS.get(k, k): v for k, v in data.items()}
        if team_id is None:
            if "teamId" not in normalized:
                raise ValueError("Team stats entry has no teamId.")
            team_id = normalized["teamId"]
        kwargs = {
            attr: int(normalized.get(key, 0))
            for key, attr in _KEY_TO_FIELD.items()
            if key != "teamId"
        }
        stats = cls(team_id=int(team_id), **kwargs)
        stats.check_invariants()
        return stats


def aggregate_team_stats(matches: Iterable[MatchRecord]) -> Dict[int, TeamStats]:
    """
    Fold finished matches into per-team aggregate counters.

    Parameters
    ----------
    matches : Iterable[MatchRecord]
        Corpus covering one or more seasons/leagues, in any order.

    Returns
    -------
    Dict[int, TeamStats]
        Mapping team id -> TeamStats. Only teams that played appear.
    """
    stats: Dict[int, TeamStats] = {}
    n_matches = 0
    for match in matches:
        n_matches += 1
        for team_id in (match.home_team_id, match.away_team_id):
            team = stats.get(team_id)
            if team is None:
                team = stats[team_id] = TeamStats(team_id=team_id)
            team.record(*match.perspective(team_id))

    logger.info("Built stats for %d teams from %d matches.", len(stats), n_matches)
    return stats


def team_stats_to_dict(team_stats: Mapping[int, TeamStats]) -> Dict[str, Dict[str, int]]:
    """Serialize a team stats mapping with string keys (JSON objects)."""
    return {str(team_id): s.to_dict() for team_id, s in team_stats.items()}


def team_stats_from_dict(data: Mapping[str, Mapping[str, Any]]) -> Dict[int, TeamStats]:
    """Inverse of team_stats_to_dict."""
    return {int(k): TeamStats.from_dict(v, team_id=int(k)) for k, v in data.items()}
