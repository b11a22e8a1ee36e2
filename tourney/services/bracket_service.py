"""
Single elimination bracket generation.

The seeding helpers at the top are pure functions of the team count so they
can be tested without a database. ``create_bracket`` turns them into Match
rows for a tournament whose lock is already held by the caller.
"""
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from tourney.core.errors import ValidationError, tournament_not_found
from tourney.models import Match, MatchStatus, Team, Tournament
from tourney.schemas import match_schemas

logger = logging.getLogger(__name__)


def calculate_bracket_size(num_teams: int) -> int:
    """Smallest power of two holding ``num_teams`` (never below 2)."""
    size = 2
    while size < num_teams:
        size *= 2
    return size


def round_count(bracket_size: int) -> int:
    return bracket_size.bit_length() - 1


def get_round_name(matches_in_round: int) -> str:
    teams_in_round = matches_in_round * 2
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    return f"Round of {teams_in_round}"


def bracket_order(bracket_size: int) -> List[int]:
    """
    Standard bracket order of seeds by slot position.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups 1v8, 4v5, 2v7, 3v6; seeds 1 and 2 sit in opposite
    halves and can only meet in the final.
    """
    if bracket_size < 2 or bracket_size & (bracket_size - 1):
        raise ValueError(f"Bracket size must be a power of two >= 2, got {bracket_size}")
    if bracket_size == 2:
        return [1, 2]

    upper_half = bracket_order(bracket_size // 2)
    result = []
    for seed in upper_half:
        result.extend([seed, bracket_size + 1 - seed])
    return result


def seed_slots(num_teams: int) -> List[Tuple[Optional[int], Optional[int]]]:
    """
    Round-1 pairings as (seed, seed) tuples, one per slot. Seeds beyond
    ``num_teams`` are byes and come back as None.
    """
    order = bracket_order(calculate_bracket_size(num_teams))
    seats = [seed if seed <= num_teams else None for seed in order]
    return [(seats[i], seats[i + 1]) for i in range(0, len(seats), 2)]


def seeding_order(teams: List[Team]) -> List[Team]:
    """Explicit seeds first in ascending order, then registration order."""
    return sorted(teams, key=lambda t: (t.seed is None, t.seed or 0, t.id))


def feeds_into(match_round: int, slot: int) -> Tuple[int, int, int]:
    """(round, slot, team position 1|2) of the match fed by ``(match_round, slot)``."""
    return match_round + 1, slot // 2, 1 if slot % 2 == 0 else 2


def place_winner(next_match: Match, feeder_slot: int, team_id: Optional[int]) -> None:
    if feeder_slot % 2 == 0:
        next_match.team1_id = team_id
    else:
        next_match.team2_id = team_id


def bracket_ceiling(tournament: Tournament) -> Optional[int]:
    if tournament.bracket_size:
        return tournament.bracket_size
    if tournament.max_teams:
        return calculate_bracket_size(tournament.max_teams)
    return None


def create_bracket(db: Session, tournament: Tournament, teams: List[Team]) -> List[Match]:
    """
    Builds every match of every round in one go. Round-1 byes are completed
    immediately and their team is written into round 2. The caller holds the
    tournament scope and is responsible for the phase change.
    """
    if len(teams) < 2:
        raise ValidationError(
            f"At least 2 checked-in teams are needed, found {len(teams)}", "InsufficientTeams"
        )

    size = calculate_bracket_size(len(teams))
    ceiling = bracket_ceiling(tournament)
    if ceiling is not None and size > ceiling:
        raise ValidationError(
            f"{len(teams)} teams need a bracket of {size}, above the limit of {ceiling}",
            "CapacityExceeded",
        )

    ordered = seeding_order(teams)
    rounds = round_count(size)

    positions: Dict[Tuple[int, int], Match] = {}
    for round_number in range(1, rounds + 1):
        for slot in range(size >> round_number):
            positions[(round_number, slot)] = Match(
                tournament_id=tournament.id,
                round=round_number,
                slot=slot,
                status=MatchStatus.PENDING.value,
                is_bye=False,
            )

    byes = 0
    for slot, (seed1, seed2) in enumerate(seed_slots(len(ordered))):
        match = positions[(1, slot)]
        match.team1_id = ordered[seed1 - 1].id if seed1 else None
        match.team2_id = ordered[seed2 - 1].id if seed2 else None

        present = [team_id for team_id in (match.team1_id, match.team2_id) if team_id is not None]
        if len(present) == 1:
            match.is_bye = True
            match.status = MatchStatus.COMPLETED.value
            match.winner_id = present[0]
            next_round, next_slot, _ = feeds_into(1, slot)
            place_winner(positions[(next_round, next_slot)], slot, present[0])
            byes += 1

    tournament.bracket_size = size
    matches = [positions[key] for key in sorted(positions)]
    db.add_all(matches)
    db.flush()

    logger.info(
        f"Tournament {tournament.id}: bracket of {size} generated for {len(teams)} teams "
        f"({len(matches)} matches, {byes} byes)"
    )
    return matches


def get_bracket(db: Session, tournament_id: int) -> match_schemas.BracketRead:
    tournament = db.query(Tournament).filter(Tournament.id == tournament_id).first()
    if not tournament:
        raise tournament_not_found(tournament_id)

    matches = db.query(Match).filter(Match.tournament_id == tournament_id)\
        .order_by(Match.round, Match.slot)\
        .all()

    rounds: Dict[int, List[Match]] = {}
    for match in matches:
        rounds.setdefault(match.round, []).append(match)

    return match_schemas.BracketRead(
        tournament_id=tournament_id,
        bracket_size=tournament.bracket_size if matches else 0,
        rounds=[
            match_schemas.BracketRound(
                round=round_number,
                name=get_round_name(len(round_matches)),
                matches=[match_schemas.MatchRead.model_validate(m) for m in round_matches],
            )
            for round_number, round_matches in sorted(rounds.items())
        ],
    )
