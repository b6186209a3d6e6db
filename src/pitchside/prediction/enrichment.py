"""
Deterministic analyses of live match data.

The external caller fetches recent matches, head-to-head history and season
statistics and hands them over as `LiveMatchData`. The functions here turn
that data into prediction factors; `merge_live_factors` then overrides the
model-side approximations wherever real data exists.

A value of None always means "no data" so that genuine zeros (a team that
has not won away this season) still override the fallback.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from pitchside.config import RECENT_FORM_WINDOW
from pitchside.data.schema import MatchRecord
from pitchside.prediction.results import (
    GoalsAverage,
    HeadToHead,
    HomeAdvantage,
    LiveMatchData,
    MatchFactors,
)
from pitchside.utils.logging_utils import get_logger
from pitchside.utils.rounding import round_half_up, round_half_up_int

logger = get_logger(__name__)


def _as_utc(date: datetime) -> datetime:
    # naive dates are taken to be UTC, like provider timestamps
    if date.tzinfo is None:
        return date.replace(tzinfo=timezone.utc)
    return date


def order_newest_first(matches: Sequence[MatchRecord]) -> List[MatchRecord]:
    """
    Sort matches newest first when every match carries a date.

    Otherwise the input order is trusted as-is (provider feeds already
    return the latest match first). Naive and timezone-aware dates can be
    mixed; naive ones are read as UTC.
    """
    matches = list(matches)
    if matches and all(m.date is not None for m in matches):
        return sorted(matches, key=lambda m: _as_utc(m.date), reverse=True)
    return matches


def _team_matches(matches: Sequence[MatchRecord], team_id: int) -> List[MatchRecord]:
    own = [m for m in matches if m.involves(team_id)]
    if len(own) < len(matches):
        logger.warning(
            "Ignoring %d matches not involving team %s.", len(matches) - len(own), team_id
        )
    return order_newest_first(own)


def result_letter(goals_for: int, goals_against: int) -> str:
    if goals_for > goals_against:
        return "W"
    if goals_for < goals_against:
        return "L"
    return "D"


def recent_form(
    matches: Sequence[MatchRecord],
    team_id: int,
    window: int = RECENT_FORM_WINDOW,
) -> List[str]:
    """W/D/L letters of the team's last ``window`` matches, newest first."""
    form = []
    for match in _team_matches(matches, team_id)[:window]:
        goals_for, goals_against, _ = match.perspective(team_id)
        form.append(result_letter(goals_for, goals_against))
    return form


def head_to_head_summary(
    matches: Sequence[MatchRecord],
    home_team_id: int,
    away_team_id: int,
    window: Optional[int] = None,
) -> HeadToHead:
    """
    Count wins, draws and losses between the two teams.

    Results are seen from the side of ``home_team_id`` regardless of which
    venue each past meeting was played at. ``last_result`` is the most
    recent scoreline as ``"<home goals>-<away goals>"`` from that side.

    Parameters
    ----------
    matches : Sequence[MatchRecord]
        Past meetings. Matches not between the two teams are ignored.
    home_team_id, away_team_id : int
        The fixture being predicted.
    window : int | None
        Only consider the ``window`` most recent meetings.
    """
    meetings = [
        m for m in matches
        if m.involves(home_team_id) and m.involves(away_team_id)
    ]
    meetings = order_newest_first(meetings)
    if window is not None:
        meetings = meetings[:window]
    if not meetings:
        return HeadToHead()

    home_wins = draws = away_wins = 0
    for match in meetings:
        goals_for, goals_against, _ = match.perspective(home_team_id)
        letter = result_letter(goals_for, goals_against)
        if letter == "W":
            home_wins += 1
        elif letter == "L":
            away_wins += 1
        else:
            draws += 1

    last_for, last_against, _ = meetings[0].perspective(home_team_id)
    summary = tuple(
        {
            "date": m.date.isoformat() if m.date is not None else None,
            "homeTeamId": m.home_team_id,
            "awayTeamId": m.away_team_id,
            "homeGoals": m.home_goals,
            "awayGoals": m.away_goals,
            "winner": {"W": "home", "L": "away", "D": "draw"}[
                result_letter(m.home_goals, m.away_goals)
            ],
        }
        for m in meetings[:5]
    )
    return HeadToHead(
        home_wins=home_wins,
        draws=draws,
        away_wins=away_wins,
        total_matches=len(meetings),
        last_result=f"{last_for}-{last_against}",
        matches=summary,
    )


def home_away_win_rates(
    matches: Sequence[MatchRecord],
    team_id: int,
) -> Tuple[Optional[int], Optional[int]]:
    """
    Win percentages of a team at home and away.

    Returns
    -------
    (home_pct, away_pct)
        Each is None when the team played no match at that venue.
    """
    home_played = home_won = away_played = away_won = 0
    for match in _team_matches(matches, team_id):
        goals_for, goals_against, is_home = match.perspective(team_id)
        won = goals_for > goals_against
        if is_home:
            home_played += 1
            home_won += int(won)
        else:
            away_played += 1
            away_won += int(won)

    home_pct = round_half_up_int(home_won / home_played * 100) if home_played else None
    away_pct = round_half_up_int(away_won / away_played * 100) if away_played else None
    return home_pct, away_pct


def goals_average(
    matches: Sequence[MatchRecord],
    team_id: int,
    window: int = RECENT_FORM_WINDOW,
) -> Optional[Tuple[float, float]]:
    """
    Average goals scored and conceded over the last ``window`` matches,
    rounded to one decimal. None when there are no matches.
    """
    recent = _team_matches(matches, team_id)[:window]
    if not recent:
        return None
    scored = conceded = 0
    for match in recent:
        goals_for, goals_against, _ = match.perspective(team_id)
        scored += goals_for
        conceded += goals_against
    return (
        round_half_up(scored / len(recent), 1),
        round_half_up(conceded / len(recent), 1),
    )


def merge_live_factors(
    fallback: MatchFactors,
    home_team_id: int,
    away_team_id: int,
    live: LiveMatchData,
) -> MatchFactors:
    """
    Override model-side factors with values computed from live data.

    Each field is replaced only when the live data yields a value for it;
    otherwise the fallback value is kept.
    """
    home_form = recent_form(live.home_recent, home_team_id)
    away_form = recent_form(live.away_recent, away_team_id)
    synthetic = fallback.synthetic_form and not (home_form and away_form)

    head_to_head = fallback.head_to_head
    if live.head_to_head:
        head_to_head = head_to_head_summary(live.head_to_head, home_team_id, away_team_id)

    home_rate, _ = home_away_win_rates(live.home_recent, home_team_id)
    _, away_rate = home_away_win_rates(live.away_recent, away_team_id)
    advantage = HomeAdvantage(
        home_win_rate=home_rate if home_rate is not None else fallback.home_advantage.home_win_rate,
        away_win_rate=away_rate if away_rate is not None else fallback.home_advantage.away_win_rate,
    )

    goals = fallback.goals_average
    home_goals = goals_average(live.home_recent, home_team_id)
    if home_goals is not None:
        goals = replace(goals, home_scored=home_goals[0], home_conceded=home_goals[1])
    away_goals = goals_average(live.away_recent, away_team_id)
    if away_goals is not None:
        goals = replace(goals, away_scored=away_goals[0], away_conceded=away_goals[1])

    return MatchFactors(
        recent_form_home=tuple(home_form) if home_form else fallback.recent_form_home,
        recent_form_away=tuple(away_form) if away_form else fallback.recent_form_away,
        head_to_head=head_to_head,
        home_advantage=advantage,
        goals_average=goals,
        synthetic_form=synthetic,
    )


def goals_average_factor(
    home_goals: Optional[Tuple[float, float]],
    away_goals: Optional[Tuple[float, float]],
    default: float,
) -> GoalsAverage:
    """Combine both teams' averages, substituting ``default`` where missing."""
    hs, hc = home_goals if home_goals is not None else (default, default)
    as_, ac = away_goals if away_goals is not None else (default, default)
    return GoalsAverage(home_scored=hs, home_conceded=hc, away_scored=as_, away_conceded=ac)
