# backend/academy/services/slots.py
"""
Two time grids are in use and they are deliberately kept apart:

* the weekly snapshot grid: six 70-minute lesson slots starting at 13:00,
  stored on every WeeklyScheduleDetail as ``slot_number``;
* the schedule board grid: 10-minute rows from 13:00 to 19:00, used to lay
  out the recurring base schedule per teacher.
"""
from datetime import time

from ..date_utils import minutes_since_midnight

GRID_START_MINUTES = 13 * 60   # 13:00

SNAPSHOT_SLOT_MINUTES = 70
SNAPSHOT_SLOT_COUNT = 6

BOARD_ROW_MINUTES = 10
BOARD_ROW_COUNT = 37   # 13:00 .. 19:00 inclusive


def snapshot_slot_number(start_time: time) -> int:
    """Slot 1..6 on the 70-minute grid; anything outside the window is clamped."""
    offset = minutes_since_midnight(start_time) - GRID_START_MINUTES
    slot_index = offset // SNAPSHOT_SLOT_MINUTES   # floor, also for negative offsets
    return max(1, min(SNAPSHOT_SLOT_COUNT, slot_index + 1))


def board_row(start_time: time) -> int:
    """Zero-based 10-minute row on the schedule board, clamped to the board."""
    offset = minutes_since_midnight(start_time) - GRID_START_MINUTES
    return max(0, min(BOARD_ROW_COUNT - 1, offset // BOARD_ROW_MINUTES))


def board_span(start_time: time, end_time: time) -> int:
    """Number of 10-minute rows a lesson covers (at least one)."""
    minutes = minutes_since_midnight(end_time) - minutes_since_midnight(start_time)
    return max(1, -(-minutes // BOARD_ROW_MINUTES))


def board_labels():
    return [
        f"{13 + i // 6:02d}:{(i % 6) * BOARD_ROW_MINUTES:02d}"
        for i in range(BOARD_ROW_COUNT)
    ]
