import pytest
from z3 import sat, unsat

from solver import Cell, Record, count, run_lengths
from z3_solver import count_models, make_solver, model_to_pattern


@pytest.mark.parametrize(
    "line, expected",
    [
        ("#.#..### 1,1,3", 1),
        ("???.### 1,1,3", 1),
        (".??..??...?##. 1,1,3", 4),
        ("?#?#?#?#?#?#?#? 1,3,1,6", 1),
        ("????.#...#... 4,1,1", 1),
        ("????.######..#####. 1,6,5", 4),
        ("?###???????? 3,2,1", 10),
    ],
)
def test_count_models_sample_records(line, expected):
    assert count_models(Record.from_string(line)) == expected


@pytest.mark.parametrize(
    "line",
    [
        "?????? 1,1",
        "??#??.?? 2,1",
        "?.?#??? 1,3",
        "#?#?#? 1,1",
        "??? 4",
        "###? 2",
    ],
)
def test_count_models_matches_counter(line):
    r = Record.from_string(line)
    assert count_models(r) == count(r)


def test_count_models_empty_clue_list():
    assert count_models(Record([Cell.UNKNOWN, Cell.GAP], [])) == 1
    assert count_models(Record([Cell.BLOCK], [])) == 0
    assert count_models(Record([], [])) == 1
    assert count_models(Record([], [1])) == 0


def test_count_models_limit():
    r = Record.from_string("?###???????? 3,2,1")
    assert count_models(r, limit=3) == 3
    assert count_models(r, limit=100) == 10


def test_model_to_pattern():
    r = Record.from_string("?#?#?#?#?#?#?#? 1,3,1,6")
    s = make_solver(r)
    assert s.check() == sat
    pattern = model_to_pattern(r, s.model())
    assert run_lengths(pattern) == [1, 3, 1, 6]
    for cell, known in zip(pattern, r.pattern):
        if known != Cell.UNKNOWN:
            assert cell == known


def test_make_solver_unsatisfiable():
    assert make_solver(Record.from_string("#.# 1")).check() == unsat
