"""Tests for the pure entry scoring and ranking functions.

Status rules, in priority order:
    goals > goal_target          -> BUST
    every matched player scored  -> ACTIVE
    otherwise                    -> SHORT

Footballers without a matching player stat are ignored entirely.
"""

import random

import pytest

from fpl_runner.services.scoring import (
    EntryStatistics,
    EntryStatus,
    classify_status,
    compute_entry_statistics,
    filter_relevant_players,
    group_entries_by_pool,
    index_player_stats,
    rank_pool_entries,
)
from tests.factories import make_entry, make_pool, make_stat


def stats_for(footballer_ids, players, goal_target=21) -> EntryStatistics:
    return compute_entry_statistics(footballer_ids, index_player_stats(players), goal_target)


# =============================================================================
# classify_status
# =============================================================================


class TestClassifyStatus:
    """Tests for classify_status."""

    @pytest.mark.parametrize("all_scored", [True, False])
    def test_bust_over_target_regardless_of_all_scored(self, all_scored):
        """More than 21 goals is always BUST."""
        assert classify_status(22, all_scored) == EntryStatus.BUST

    def test_exactly_target_is_not_bust(self):
        """Reaching the target exactly does not bust."""
        assert classify_status(21, True) == EntryStatus.ACTIVE
        assert classify_status(21, False) == EntryStatus.SHORT

    def test_active_when_all_scored(self):
        assert classify_status(5, True) == EntryStatus.ACTIVE

    def test_short_when_someone_has_not_scored(self):
        assert classify_status(5, False) == EntryStatus.SHORT

    def test_custom_goal_target(self):
        """A configured threshold replaces the default of 21."""
        assert classify_status(22, True, goal_target=30) == EntryStatus.ACTIVE
        assert classify_status(31, True, goal_target=30) == EntryStatus.BUST

    def test_never_returns_winner(self):
        """WINNER is set elsewhere, never by classification."""
        outcomes = {
            classify_status(goals, all_scored)
            for goals in range(0, 40)
            for all_scored in (True, False)
        }
        assert EntryStatus.WINNER not in outcomes


# =============================================================================
# compute_entry_statistics
# =============================================================================


class TestComputeEntryStatistics:
    """Tests for per-entry aggregation."""

    def test_scenario_two_scoring_players(self):
        """Goals, own goals and xG are summed over matched players."""
        players = [make_stat(1, goals=10, own_goals=1, xg=1.5), make_stat(2, goals=5, xg=0.8)]

        result = stats_for([1, 2], players)

        assert result == EntryStatistics(
            goals=15,
            own_goals=1,
            net_goals=14,
            expected_goals=2.3,
            all_scored=True,
            status=EntryStatus.ACTIVE,
        )

    def test_scenario_player_without_goals_is_short(self):
        result = stats_for([3], [make_stat(3, goals=0, xg=0.1)])

        assert result.all_scored is False
        assert result.status == EntryStatus.SHORT
        assert result.goals == 0
        assert result.expected_goals == 0.1

    def test_scenario_bust(self):
        result = stats_for([4], [make_stat(4, goals=22)])

        assert result.status == EntryStatus.BUST
        assert result.goals == 22

    def test_bust_even_when_not_all_scored(self):
        """BUST outranks SHORT."""
        players = [make_stat(1, goals=25), make_stat(2, goals=0)]

        result = stats_for([1, 2], players)

        assert result.all_scored is False
        assert result.status == EntryStatus.BUST

    def test_no_matched_players(self):
        """An entry with no matches is zeroed and vacuously ACTIVE."""
        result = stats_for([7, 8, 9], [make_stat(1, goals=3)])

        assert result == EntryStatistics(
            goals=0,
            own_goals=0,
            net_goals=0,
            expected_goals=0.0,
            all_scored=True,
            status=EntryStatus.ACTIVE,
        )

    def test_no_picks(self):
        result = stats_for([], [make_stat(1, goals=3)])

        assert result.status == EntryStatus.ACTIVE
        assert result.goals == 0

    def test_unmatched_footballer_does_not_break_all_scored(self):
        """Only a matched zero-goal player makes all_scored false."""
        result = stats_for([1, 99], [make_stat(1, goals=2)])

        assert result.all_scored is True
        assert result.goals == 2
        assert result.status == EntryStatus.ACTIVE

    def test_negative_net_goals(self):
        """Net goals go negative when own goals exceed goals."""
        result = stats_for([1], [make_stat(1, goals=1, own_goals=3)])

        assert result.net_goals == -2

    def test_net_goals_identity_for_random_inputs(self):
        """net_goals == goals - own_goals for any combination of players."""
        rng = random.Random(42)
        for _ in range(200):
            players = [
                make_stat(i, goals=rng.randint(0, 15), own_goals=rng.randint(0, 5))
                for i in range(1, 6)
            ]
            picks = rng.sample(range(1, 9), k=rng.randint(0, 8))

            result = stats_for(picks, players)

            assert result.net_goals == result.goals - result.own_goals

    def test_expected_goals_rounded_to_two_places(self):
        players = [make_stat(1, goals=1, xg=0.333), make_stat(2, goals=1, xg=0.333)]

        result = stats_for([1, 2], players)

        assert result.expected_goals == 0.67

    @pytest.mark.parametrize(
        "xg,expected", [(0.125, 0.13), (0.375, 0.38), (2.5, 2.5), (0.004, 0.0)]
    )
    def test_expected_goals_ties_round_up(self, xg, expected):
        """Exact halves round up rather than to the even digit."""
        result = stats_for([1], [make_stat(1, goals=1, xg=xg)])

        assert result.expected_goals == expected

    def test_goal_target_parameter(self):
        result = stats_for([1], [make_stat(1, goals=22)], goal_target=30)

        assert result.status == EntryStatus.ACTIVE

    def test_idempotent(self):
        """Same inputs produce the same statistics every time."""
        players = [make_stat(1, goals=4, own_goals=1, xg=2.71), make_stat(2, goals=0, xg=0.4)]

        first = stats_for([1, 2], players)
        second = stats_for([1, 2], players)

        assert first == second


class TestPlayerHelpers:
    """Tests for index_player_stats and filter_relevant_players."""

    def test_index_by_id(self):
        players = [make_stat(5), make_stat(9)]

        index = index_player_stats(players)

        assert set(index) == {5, 9}
        assert index[9] is players[1]

    def test_filter_keeps_known_footballers(self):
        players = [make_stat(1), make_stat(2), make_stat(3)]

        relevant = filter_relevant_players(players, {1, 3, 42})

        assert [p.id for p in relevant] == [1, 3]

    def test_filter_with_no_known_footballers(self):
        assert filter_relevant_players([make_stat(1)], set()) == []


# =============================================================================
# Ranking
# =============================================================================


class TestGroupEntriesByPool:
    """Tests for group_entries_by_pool."""

    def test_groups_by_pool_id(self):
        pool_a = make_pool("a")
        pool_b = make_pool("b")
        entries = [
            make_entry("e1", pool=pool_a),
            make_entry("e2", pool=pool_b),
            make_entry("e3", pool=pool_a),
        ]

        groups = group_entries_by_pool(entries)

        assert {k: [e.id for e in v] for k, v in groups.items()} == {
            "a": ["e1", "e3"],
            "b": ["e2"],
        }

    def test_entries_without_pool_are_excluded(self):
        entries = [make_entry("e1"), make_entry("e2", pool=make_pool("a"))]

        groups = group_entries_by_pool(entries)

        assert list(groups) == ["a"]
        assert [e.id for e in groups["a"]] == ["e2"]

    def test_empty(self):
        assert group_entries_by_pool([]) == {}


class TestRankPoolEntries:
    """Tests for rank_pool_entries."""

    def test_ranks_by_goals_when_own_goals_rule_off(self):
        pool = make_pool(own_goals=False)
        entries = [make_entry("e1", pool=pool, goals=10), make_entry("e2", pool=pool, goals=15)]

        ranked = rank_pool_entries(entries)

        assert [(entry.id, rank) for entry, rank in ranked] == [("e2", 1), ("e1", 2)]

    def test_ranks_by_net_goals_when_own_goals_rule_on(self):
        pool = make_pool(own_goals=True)
        entries = [
            make_entry("e1", pool=pool, goals=15, own_goals=6, net_goals=9),
            make_entry("e2", pool=pool, goals=12, own_goals=0, net_goals=12),
            make_entry("e3", pool=pool, goals=3, own_goals=5, net_goals=-2),
        ]

        ranked = rank_pool_entries(entries)

        assert [(entry.id, rank) for entry, rank in ranked] == [
            ("e2", 1),
            ("e1", 2),
            ("e3", 3),
        ]

    def test_ties_broken_by_entry_id(self):
        pool = make_pool()
        entries = [
            make_entry("c", pool=pool, goals=5),
            make_entry("a", pool=pool, goals=5),
            make_entry("b", pool=pool, goals=7),
        ]

        ranked = rank_pool_entries(entries)

        assert [(entry.id, rank) for entry, rank in ranked] == [("b", 1), ("a", 2), ("c", 3)]

    def test_ranks_are_permutation_of_one_to_n(self):
        pool = make_pool(own_goals=True)
        rng = random.Random(7)
        entries = [
            make_entry(f"e{i:02d}", pool=pool, net_goals=rng.randint(-5, 20))
            for i in range(25)
        ]

        ranks = [rank for _, rank in rank_pool_entries(entries)]

        assert sorted(ranks) == list(range(1, 26))

    def test_ranking_is_independent_of_input_order(self):
        pool = make_pool()
        entries = [make_entry(f"e{i}", pool=pool, goals=g) for i, g in enumerate([3, 9, 1, 9, 4])]
        shuffled = entries[::-1]

        first = [(e.id, r) for e, r in rank_pool_entries(entries)]
        second = [(e.id, r) for e, r in rank_pool_entries(shuffled)]

        assert first == second

    def test_does_not_reorder_input(self):
        pool = make_pool()
        entries = [make_entry("e1", pool=pool, goals=1), make_entry("e2", pool=pool, goals=2)]

        rank_pool_entries(entries)

        assert [e.id for e in entries] == ["e1", "e2"]

    def test_empty_pool(self):
        assert rank_pool_entries([]) == []
