"""
Module 07 - Raffle Odds Unit Tests
Tests for core/raffle/odds.py
"""
import pytest

from core.raffle.odds import (
    RaffleOddsCalculator,
    chance_any_prize_pct,
    format_probability,
    prize_split,
    tickets_for_credits,
)


class TestChanceAnyPrize:

    def test_formula(self):
        # 1 - 0.95^3 = 0.142625
        assert chance_any_prize_pct(5, 100) == 14.26

    @pytest.mark.parametrize("t,total", [(0, 100), (5, 0), (-1, 100), (5, -3)])
    def test_degenerate_zero(self, t, total):
        assert chance_any_prize_pct(t, total) == 0.0

    def test_full_ownership(self):
        assert chance_any_prize_pct(100, 100) == 100.0

    def test_clamped_above_total(self):
        assert chance_any_prize_pct(150, 100) == 100.0

    def test_monotonic(self):
        values = [chance_any_prize_pct(t, 1000) for t in range(0, 1001, 50)]
        assert values == sorted(values)

    def test_single_prize(self):
        assert chance_any_prize_pct(1, 4, prizes=1) == 25.0


class TestTickets:

    def test_floor(self):
        assert tickets_for_credits(2999, 1000) == 2

    def test_non_positive_credits(self):
        assert tickets_for_credits(0) == 0
        assert tickets_for_credits(-10) == 0

    def test_bad_price(self):
        with pytest.raises(ValueError):
            tickets_for_credits(100, 0)


class TestPrizeSplit:

    def test_default_split(self):
        assert prize_split(1000) == [500, 300, 200]

    def test_remainder_to_first(self):
        amounts = prize_split(1001)
        assert amounts == [501, 300, 200]
        assert sum(amounts) == 1001

    def test_must_sum_to_10000(self):
        with pytest.raises(ValueError):
            prize_split(100, [5000, 3000])

    def test_negative_pool(self):
        with pytest.raises(ValueError):
            prize_split(-1)


class TestFormat:

    @pytest.mark.parametrize("pct,text", [
        (0, "0%"),
        (0.004, "<0.01%"),
        (0.5, "0.50%"),
        (14.2625, "14.3%"),
        (100, "100%"),
    ])
    def test_display(self, pct, text):
        assert format_probability(pct) == text


class TestCalculator:

    def test_odds(self):
        odds = RaffleOddsCalculator().odds(5, 100, pool=1000)
        assert odds.chance_pct == 14.26
        assert odds.chance_formatted == "14.3%"
        assert odds.prizes == [500, 300, 200]

    def test_tiny_share_not_shown_as_zero(self):
        odds = RaffleOddsCalculator().odds(1, 1_000_000)
        assert odds.chance_pct == 0.0
        assert odds.chance_formatted == "<0.01%"

    def test_ticket_price(self):
        assert RaffleOddsCalculator(ticket_price=500).tickets(1500) == 3

    def test_prize_count_must_match_split(self):
        with pytest.raises(ValueError):
            RaffleOddsCalculator(prize_count=2)
