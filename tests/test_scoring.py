# tests/test_scoring.py
from updown.scoring import (
    bid_accuracy,
    calculate_deal_points,
    get_taken_from_deal_points,
    taken_in_deal,
)
from updown.state import DealRecord


def test_calculate_deal_points():
    assert calculate_deal_points(0, 0) == 5
    assert calculate_deal_points(0, 3) == 3
    assert calculate_deal_points(4, 4) == 40
    assert calculate_deal_points(4, 1) == -30
    assert calculate_deal_points(2, 5) == 5


def test_taken_is_recovered_from_points():
    for bid in range(10):
        for taken in range(10):
            if bid == 0 and taken == 5:
                continue
            points = calculate_deal_points(bid, taken)
            assert get_taken_from_deal_points(bid, points) == taken, (bid, taken)


def test_zero_bid_with_five_tricks_reads_as_clean_zero():
    assert calculate_deal_points(0, 5) == calculate_deal_points(0, 0)
    assert get_taken_from_deal_points(0, 5) == 0


def test_stored_counts_win_over_recovery():
    record = DealRecord(1, bids=(0, 1, 0, 0), points=(5, 10, 5, 5), taken=(5, 1, 0, 0))
    assert taken_in_deal(record, 0) == 5
    assert bid_accuracy([record], 0) == 0
    legacy = DealRecord(1, bids=(0, 1, 0, 0), points=(5, 10, 5, 5))
    assert taken_in_deal(legacy, 0) == 0
    assert bid_accuracy([legacy], 0) == 100


def _record(n, bid, points):
    return DealRecord(deal_number=n, bids=(bid, 0, 0, 0), points=(points, 5, 5, 5))


def test_bid_accuracy_rounds_half_up():
    history = [_record(1, 1, 10)] + [_record(n, 1, -10) for n in range(2, 9)]
    # 1 of 8 exact = 12.5%
    assert bid_accuracy(history, 0) == 13
    assert bid_accuracy(history, 1) == 100


def test_bid_accuracy_of_two_thirds():
    history = [_record(1, 1, 10), _record(2, 0, 5), _record(3, 2, 3)]
    assert bid_accuracy(history, 0) == 67


def test_bid_accuracy_without_history():
    assert bid_accuracy([], 0) == 0
