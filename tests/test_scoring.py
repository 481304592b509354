import pytest

from roster_autopilot.data import GamesPlayed, PaceKeeper, Player, PlayerRanks, TeamSnapshot
from roster_autopilot.positions import get_sport_config
from roster_autopilot.scoring import (
    DailyScoreFunction,
    PacingScoreFunction,
    ScoringMode,
    WeeklyScoreFunction,
    base_score,
    churn_threshold,
    ownership_score_function,
    rank_score,
    select_score_function,
)
from roster_autopilot.slots import RosterSlots


def _make_player(key: str = "p1", positions: tuple[str, ...] = ("PG",), **kwargs: object) -> Player:
    kwargs.setdefault("percent_owned", 50.0)
    kwargs.setdefault("selected_position", positions[0])
    return Player(player_key=key, player_name=key, eligible_positions=positions, **kwargs)


def _slots(game_code: str, roster_positions: dict[str, int]) -> RosterSlots:
    return RosterSlots(roster_positions, get_sport_config(game_code))


def _snapshot(game_code: str, **kwargs: object) -> TeamSnapshot:
    return TeamSnapshot(
        team_key="t1",
        game_code=game_code,
        players=[_make_player(positions=("C",))],
        roster_positions={"C": 1, "BN": 1},
        **kwargs,
    )


def test_base_score_falls_back_to_owned_and_floors_at_one() -> None:
    assert base_score(_make_player(percent_started=80.0, percent_owned=10.0)) == 80.0
    assert base_score(_make_player(percent_owned=10.0)) == 10.0
    assert base_score(_make_player(percent_started=0.0, percent_owned=0.0)) == 1.0


def test_daily_score_injury_factors_stack_for_long_term() -> None:
    score = DailyScoreFunction(ScoringMode.BASKETBALL, _slots("nba", {"PG": 1}))

    assert score(_make_player(), "PG") == pytest.approx(50.0)
    assert score(_make_player(injury_status="O"), "PG") == pytest.approx(50.0 * 1e-3)
    assert score(_make_player(injury_status="Out For Season"), "PG") == pytest.approx(50.0 * 1e-4)
    assert score(_make_player(injury_status="Game Time Decision"), "PG") == pytest.approx(50.0)


def test_daily_score_not_playing_factor() -> None:
    score = DailyScoreFunction(ScoringMode.BASKETBALL, _slots("nba", {"PG": 1}))

    assert score(_make_player(is_playing=False), "PG") == pytest.approx(50.0 * 1e-7)
    assert score(_make_player(is_starting=0), "PG") == pytest.approx(50.0 * 1e-7)


def test_hockey_confirmed_goalie_boost() -> None:
    slots = _slots("nhl", {"G": 2})
    by_list = DailyScoreFunction(ScoringMode.HOCKEY, slots, frozenset({"g1"}))
    by_flag = DailyScoreFunction(ScoringMode.HOCKEY, slots)

    assert by_list(_make_player("g1", ("G",)), "G") == pytest.approx(5000.0)
    assert by_flag(_make_player("g2", ("G",), is_starting=1), "G") == pytest.approx(5000.0)
    assert by_flag(_make_player("g3", ("G",)), "G") == pytest.approx(50.0)
    # Skaters never get the boost.
    assert by_flag(_make_player("s1", ("C",), is_starting=1), "C") == pytest.approx(50.0)


def test_baseball_dampens_unconfirmed_starting_pitchers_only() -> None:
    score = DailyScoreFunction(ScoringMode.BASEBALL, _slots("mlb", {"P": 3}))

    assert score(_make_player("sp", ("SP", "P")), "P") == pytest.approx(50.0 * 1e-2)
    assert score(_make_player("swing", ("SP", "RP", "P")), "P") == pytest.approx(50.0)
    assert score(_make_player("ace", ("SP", "P"), is_starting=1), "P") == pytest.approx(5000.0)
    assert score(_make_player("off", ("SP", "P"), is_playing=False), "P") == pytest.approx(50.0 * 1e-7)


def test_football_score_divides_by_projected_rank() -> None:
    score = DailyScoreFunction(ScoringMode.FOOTBALL, _slots("nfl", {"WR": 2}))

    ranked = _make_player("wr", ("WR",), percent_started=80.0, ranks=PlayerRanks(projected_week=4))
    assert score(ranked, "WR") == pytest.approx(2000.0)
    assert score(_make_player("unranked", ("WR",)), "WR") == 0.0


def test_weekly_score_is_next_seven_days_rank_only() -> None:
    score = WeeklyScoreFunction()
    assert score(_make_player(ranks=PlayerRanks(next_7_days=20), injury_status="O"), "PG") == pytest.approx(5.0)
    assert score(_make_player(), "PG") == 0.0


def test_rank_score_skips_unranked_and_caps_each_window() -> None:
    assert rank_score(PlayerRanks(), 100) == 0.0
    # 100 / 1 is capped at 40 / 5 = 8; 100 / 50 = 2.
    assert rank_score(PlayerRanks(last_30_days=1, last_14_days=50), 100) == pytest.approx(5 * (8 + 2))


def test_ownership_score_blends_owned_rank_and_momentum() -> None:
    score = ownership_score_function(100, {"C": 10.0, "PG": 4.0})

    p = _make_player(
        positions=("PG", "C"),
        percent_owned=60.0,
        percent_owned_delta=10.0,
        ranks=PlayerRanks(last_30_days=1),
    )
    # 0.5 * (60 - 4) + 0.5 * (5 * 8) + min(10, 4)
    assert score(p) == pytest.approx(28.0 + 20.0 + 4.0)

    with pytest.raises(ValueError):
        ownership_score_function(0)


def test_churn_threshold_range() -> None:
    assert churn_threshold(0.0) == pytest.approx(0.9)
    assert churn_threshold(0.5) == pytest.approx(0.945)
    assert churn_threshold(1.0) == pytest.approx(0.99)
    assert churn_threshold(3.0) == pytest.approx(0.99)


def test_pacing_boost_and_churn_penalty() -> None:
    slots = _slots("nhl", {"C": 1, "LW": 1, "BN": 1})
    score = PacingScoreFunction(
        slots=slots,
        ownership_score=lambda p: p.percent_owned,
        threshold=0.945,
        games_played={
            "C": PaceKeeper(played=40, max=82, projected=65.6),
            "LW": PaceKeeper(played=40, max=82, projected=82),
        },
    )

    idle_center = _make_player("c", ("C",), is_playing=False)
    assert score(idle_center, "C") == pytest.approx(50.0 * 1e-7)

    # Over the threshold: full boost when starting, nothing on the bench.
    winger = _make_player("w", ("LW",))
    assert score(winger, "LW") == pytest.approx(50.0 + 10.0)
    assert score(winger, "BN") == pytest.approx(50.0)


def test_pacing_pace_keeper_resolution() -> None:
    slots = _slots("mlb", {"C": 1, "1B": 1, "P": 2, "BN": 2})
    innings = PaceKeeper(played=100, max=1400, projected=1300)
    score = PacingScoreFunction(
        slots=slots,
        ownership_score=lambda p: p.percent_owned,
        threshold=0.9,
        games_played={
            "C": PaceKeeper(played=10, max=162, projected=120),
            "1B": PaceKeeper(played=10, max=162, projected=150),
        },
        innings_pitched=innings,
    )

    pitcher = _make_player("sp", ("SP", "P"))
    assert score.pace_keeper(pitcher, "P") is innings

    utility = _make_player("u", ("C", "1B"))
    # Starting at 1B uses the 1B entry; on the bench the tighter C entry wins.
    assert score.pace(utility, "1B") == pytest.approx(150 / 162)
    assert score.pace(utility, "BN") == pytest.approx(120 / 162)

    untracked = _make_player("of", ("OF",))
    assert score.pace(untracked, "BN") == 1.0


def test_select_score_function_first_match_wins() -> None:
    slots = RosterSlots({"C": 1, "BN": 1}, get_sport_config("nhl"))
    gp = [GamesPlayed(position="C", games_played=PaceKeeper(played=1, max=82, projected=80))]

    assert select_score_function(_snapshot("nhl", games_played=gp), slots).mode == ScoringMode.PACING
    assert select_score_function(_snapshot("nfl", weekly_deadline="1"), slots).mode == ScoringMode.FOOTBALL
    assert select_score_function(_snapshot("nba", weekly_deadline="1"), slots).mode == ScoringMode.WEEKLY
    assert select_score_function(_snapshot("nhl", weekly_deadline="intraday"), slots).mode == ScoringMode.HOCKEY
    assert select_score_function(_snapshot("mlb"), slots).mode == ScoringMode.BASEBALL
    assert select_score_function(_snapshot("nba"), slots).mode == ScoringMode.BASKETBALL
    assert select_score_function(_snapshot("wnba"), slots).mode == ScoringMode.BASKETBALL


def test_pacing_threshold_follows_season_progress() -> None:
    slots = RosterSlots({"C": 1, "BN": 1}, get_sport_config("nhl"))
    gp = [GamesPlayed(position="C", games_played=PaceKeeper(played=1, max=82, projected=80))]
    fn = select_score_function(_snapshot("nhl", games_played=gp, season_time_progress=0.5), slots)

    assert isinstance(fn, PacingScoreFunction)
    assert fn.threshold == pytest.approx(0.945)
