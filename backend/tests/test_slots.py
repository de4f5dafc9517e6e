from datetime import time

import pytest

from academy.services.slots import board_labels, board_row, board_span, snapshot_slot_number


@pytest.mark.parametrize("start, slot", [
    (time(13, 0), 1),
    (time(14, 9), 1),
    (time(14, 10), 2),
    (time(15, 20), 3),
    (time(18, 50), 6),
    (time(20, 0), 6),   # past the grid
    (time(12, 30), 1),  # before the grid
    (time(9, 0), 1),
])
def test_snapshot_slot_number(start, slot):
    assert snapshot_slot_number(start) == slot


def test_board_rows():
    assert board_row(time(13, 0)) == 0
    assert board_row(time(14, 10)) == 7
    assert board_row(time(19, 0)) == 36
    assert board_row(time(21, 0)) == 36
    assert board_row(time(11, 0)) == 0


def test_board_span_rounds_up():
    assert board_span(time(14, 0), time(14, 50)) == 5
    assert board_span(time(14, 0), time(14, 55)) == 6
    assert board_span(time(14, 0), time(14, 0)) == 1


def test_board_labels():
    labels = board_labels()
    assert len(labels) == 37
    assert labels[0] == "13:00"
    assert labels[7] == "14:10"
    assert labels[-1] == "19:00"
