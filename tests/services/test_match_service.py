import json

import pytest

from tourney.core.errors import (
    AuthenticationError, ConflictError, InvalidStateError, NotFoundError,
    PermissionDeniedError, ValidationError,
)
from tourney.models import Match, MatchStatus, TournamentPhase
from tourney.services import match_service, tournament_service


@pytest.fixture
def four_team_bracket(db, admin, now, make_tournament, make_team):
    """A, B, C, D checked in and seeded by registration: A v D and B v C, then the final.

    A-C are captained by ``captain-a`` .. ``captain-c``; D is reachable through its Discord id.
    """
    tournament = make_tournament()
    teams = {
        name: make_team(tournament, name, captain_user_id=f"captain-{name.lower()}")
        for name in ("A", "B", "C")
    }
    teams["D"] = make_team(tournament, "D", discord_id="discord-d")
    tournament_service.generate_bracket(db, tournament.id, admin, now=now)

    def match_at(round_number, slot):
        return db.query(Match).filter(
            Match.tournament_id == tournament.id,
            Match.round == round_number,
            Match.slot == slot,
        ).one()

    return tournament, teams, match_at


class TestReportResult:

    def test_full_tournament(self, db, admin, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket

        semi1 = match_service.report_result(db, match_at(1, 0).id, 2, 1, admin, now=now)
        assert semi1.winner_id == teams["A"].id
        assert semi1.status == MatchStatus.COMPLETED.value
        assert semi1.reported_by == admin.id
        assert semi1.reported_at == now
        assert match_at(2, 0).team1_id == teams["A"].id
        db.refresh(tournament)
        assert tournament.phase == TournamentPhase.IN_PROGRESS.value

        # B is team1 in the second semi
        match_service.report_result(db, match_at(1, 1).id, 0, 2, admin, now=now)
        final = match_at(2, 0)
        assert (final.team1_id, final.team2_id) == (teams["A"].id, teams["C"].id)

        final = match_service.report_result(db, final.id, 3, 1, admin, now=now)
        assert final.winner_id == teams["A"].id
        db.refresh(tournament)
        assert tournament.phase == TournamentPhase.COMPLETED.value
        assert tournament.winner_team_id == teams["A"].id

    def test_correction_before_next_match_starts(self, db, admin, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        semi1 = match_at(1, 0)

        match_service.report_result(db, semi1.id, 2, 1, admin, now=now)
        corrected = match_service.report_result(db, semi1.id, 1, 2, admin, now=now)

        assert corrected.winner_id == teams["D"].id
        assert match_at(2, 0).team1_id == teams["D"].id

    def test_correction_after_next_match_started(self, db, admin, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_service.report_result(db, match_at(1, 0).id, 2, 1, admin, now=now)
        match_service.report_result(db, match_at(1, 1).id, 2, 1, admin, now=now)
        match_service.start_match(db, match_at(2, 0).id, admin)

        with pytest.raises(ConflictError) as exc_info:
            match_service.report_result(db, match_at(1, 0).id, 0, 3, admin, now=now)
        assert exc_info.value.kind == "DownstreamAlreadyStarted"
        assert match_at(1, 0).winner_id == teams["A"].id
        assert match_at(2, 0).team1_id == teams["A"].id

    def test_correcting_the_final_changes_the_winner(self, db, admin, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_service.report_result(db, match_at(1, 0).id, 2, 1, admin, now=now)
        match_service.report_result(db, match_at(1, 1).id, 2, 1, admin, now=now)
        final_id = match_at(2, 0).id
        match_service.report_result(db, final_id, 3, 1, admin, now=now)

        match_service.report_result(db, final_id, 1, 3, admin, now=now)

        db.refresh(tournament)
        assert tournament.winner_team_id == teams["B"].id
        assert tournament.phase == TournamentPhase.COMPLETED.value

    @pytest.mark.parametrize("score1, score2", [(2, 2), (-1, 3), (0, 0)])
    def test_invalid_scores(self, db, admin, now, four_team_bracket, score1, score2):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id

        with pytest.raises(ValidationError) as exc_info:
            match_service.report_result(db, match_id, score1, score2, admin, now=now)
        assert exc_info.value.kind == "InvalidScore"
        match = match_at(1, 0)
        assert match.status == MatchStatus.PENDING.value
        assert match.score1 is None

    def test_teams_not_assigned(self, db, admin, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket

        with pytest.raises(InvalidStateError) as exc_info:
            match_service.report_result(db, match_at(2, 0).id, 2, 1, admin, now=now)
        assert exc_info.value.kind == "TeamsNotAssigned"

    def test_outsider_cannot_report(self, db, player, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket

        with pytest.raises(PermissionDeniedError) as exc_info:
            match_service.report_result(db, match_at(1, 0).id, 2, 1, player, now=now)
        assert exc_info.value.kind == "NotMatchParticipant"
        with pytest.raises(AuthenticationError):
            match_service.report_result(db, match_at(1, 0).id, 2, 1, None, now=now)

    def test_unknown_match(self, db, admin, now):
        with pytest.raises(NotFoundError) as exc_info:
            match_service.report_result(db, 999, 2, 1, admin, now=now)
        assert exc_info.value.kind == "MatchNotFound"


class TestStartMatch:

    def test_start_pending_match(self, db, admin, four_team_bracket):
        tournament, teams, match_at = four_team_bracket

        match = match_service.start_match(db, match_at(1, 1).id, admin)

        assert match.status == MatchStatus.IN_PROGRESS.value
        db.refresh(tournament)
        assert tournament.phase == TournamentPhase.IN_PROGRESS.value

    def test_cannot_start_twice(self, db, admin, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_service.start_match(db, match_at(1, 1).id, admin)

        with pytest.raises(InvalidStateError) as exc_info:
            match_service.start_match(db, match_at(1, 1).id, admin)
        assert exc_info.value.kind == "InvalidTransition"

    def test_cannot_start_without_both_teams(self, db, admin, four_team_bracket):
        tournament, teams, match_at = four_team_bracket

        with pytest.raises(InvalidStateError) as exc_info:
            match_service.start_match(db, match_at(2, 0).id, admin)
        assert exc_info.value.kind == "TeamsNotAssigned"

    def test_result_for_started_match(self, db, admin, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_service.start_match(db, match_at(1, 0).id, admin)

        match = match_service.report_result(db, match_at(1, 0).id, 13, 7, admin, now=now)

        assert match.status == MatchStatus.COMPLETED.value
        assert match.winner_id == teams["A"].id


class TestGetMatches:

    def test_ordered_by_round_and_slot(self, db, four_team_bracket):
        tournament, teams, match_at = four_team_bracket

        matches = match_service.get_matches(db, tournament.id)

        assert [(m.round, m.slot) for m in matches] == [(1, 0), (1, 1), (2, 0)]

    def test_unknown_tournament(self, db):
        with pytest.raises(NotFoundError):
            match_service.get_matches(db, 42)


class TestTeamReporting:

    def test_report_waits_for_confirmation(self, db, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket

        match = match_service.report_result(db, match_at(1, 0).id, 13, 5, user("captain-a"), now=now)

        assert match.status == MatchStatus.REPORTED.value
        assert match.reported_by_team_id == teams["A"].id
        assert match.winner_id is None
        assert match_at(2, 0).team1_id is None
        db.refresh(tournament)
        assert tournament.phase == TournamentPhase.IN_PROGRESS.value

    def test_opponent_confirms_and_winner_advances(self, db, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id
        match_service.report_result(db, match_id, 13, 5, user("captain-a"), now=now)

        # D is team2 and signs in with its Discord id
        match = match_service.confirm_result(db, match_id, user("discord-d"), now=now)

        assert match.status == MatchStatus.COMPLETED.value
        assert match.winner_id == teams["A"].id
        assert match.resolved_by == "discord-d"
        assert match_at(2, 0).team1_id == teams["A"].id

    def test_reporting_team_cannot_confirm_itself(self, db, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id
        match_service.report_result(db, match_id, 13, 5, user("captain-a"), now=now)

        with pytest.raises(PermissionDeniedError) as exc_info:
            match_service.confirm_result(db, match_id, user("captain-a"), now=now)
        assert exc_info.value.kind == "OpponentConfirmationRequired"
        assert match_at(1, 0).status == MatchStatus.REPORTED.value

    def test_team_from_another_match_cannot_confirm(self, db, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id
        match_service.report_result(db, match_id, 13, 5, user("captain-a"), now=now)

        with pytest.raises(PermissionDeniedError):
            match_service.confirm_result(db, match_id, user("captain-b"), now=now)

    def test_admin_confirms_reported_score(self, db, admin, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 1).id
        match_service.report_result(db, match_id, 10, 12, user("captain-c"), now=now)

        match = match_service.confirm_result(db, match_id, admin, now=now)

        assert match.winner_id == teams["C"].id
        assert match_at(2, 0).team2_id == teams["C"].id

    def test_confirm_requires_a_report(self, db, admin, four_team_bracket, now):
        tournament, teams, match_at = four_team_bracket

        with pytest.raises(InvalidStateError) as exc_info:
            match_service.confirm_result(db, match_at(1, 0).id, admin, now=now)
        assert exc_info.value.kind == "InvalidTransition"

    def test_team_cannot_correct_completed_result(self, db, admin, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id
        match_service.report_result(db, match_id, 2, 1, admin, now=now)

        with pytest.raises(PermissionDeniedError) as exc_info:
            match_service.report_result(db, match_id, 1, 2, user("discord-d"), now=now)
        assert exc_info.value.kind == "AdminRequired"


class TestDisputes:

    def test_dispute_blocks_until_admin_rules(self, db, admin, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id
        match_service.report_result(db, match_id, 13, 5, user("captain-a"), now=now)

        disputed = match_service.dispute_result(
            db, match_id, "Score was 5-13", "https://clips.example/1", user("discord-d"), now=now
        )
        assert disputed.status == MatchStatus.DISPUTED.value

        with pytest.raises(InvalidStateError) as exc_info:
            match_service.confirm_result(db, match_id, user("discord-d"), now=now)
        assert exc_info.value.kind == "InvalidTransition"
        with pytest.raises(InvalidStateError) as exc_info:
            match_service.report_result(db, match_id, 13, 6, user("captain-a"), now=now)
        assert exc_info.value.kind == "MatchDisputed"

        ruled = match_service.report_result(db, match_id, 5, 13, admin, now=now)
        assert ruled.status == MatchStatus.COMPLETED.value
        assert ruled.winner_id == teams["D"].id
        assert match_at(2, 0).team1_id == teams["D"].id

    def test_reason_required(self, db, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id
        match_service.report_result(db, match_id, 13, 5, user("captain-a"), now=now)

        with pytest.raises(ValidationError) as exc_info:
            match_service.dispute_result(db, match_id, "   ", None, user("discord-d"), now=now)
        assert exc_info.value.kind == "ReasonRequired"

    def test_outsider_cannot_dispute(self, db, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id
        match_service.report_result(db, match_id, 13, 5, user("captain-a"), now=now)

        with pytest.raises(PermissionDeniedError) as exc_info:
            match_service.dispute_result(db, match_id, "Wrong score", None, user("captain-b"), now=now)
        assert exc_info.value.kind == "NotMatchParticipant"


class TestAuditLog:

    def test_every_step_is_recorded(self, db, admin, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id
        match_service.report_result(db, match_id, 13, 5, user("captain-a"), now=now)
        match_service.dispute_result(db, match_id, "Score was 5-13", None, user("discord-d"), now=now)
        match_service.report_result(db, match_id, 5, 13, admin, now=now)

        entries = match_service.get_audit_log(db, match_id, admin)

        assert [(e.action, e.actor_id) for e in entries] == [
            ("match_report", "captain-a"),
            ("match_dispute", "discord-d"),
            ("match_result", "admin-1"),
        ]
        assert json.loads(entries[0].payload) == {"score1": 13, "score2": 5}
        assert json.loads(entries[1].payload)["reason"] == "Score was 5-13"

    def test_failed_report_leaves_no_entry(self, db, admin, user, now, four_team_bracket):
        tournament, teams, match_at = four_team_bracket
        match_id = match_at(1, 0).id

        with pytest.raises(ValidationError):
            match_service.report_result(db, match_id, 3, 3, user("captain-a"), now=now)

        assert match_service.get_audit_log(db, match_id, admin) == []

    def test_admin_only(self, db, player, four_team_bracket):
        tournament, teams, match_at = four_team_bracket

        with pytest.raises(PermissionDeniedError):
            match_service.get_audit_log(db, match_at(1, 0).id, player)
