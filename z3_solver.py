"""
Counter for Hot Springs records built on z3.

Usage: python3 z3_solver.py < records.txt

Requires z3 to be installed: pip install z3-solver

Every arrangement is found as a separate model, so this is only practical for
small records. It is an independent check of the counts from solver.py.
"""

import fileinput
import sys
from typing import Optional

from z3 import And, Bool, BoolRef, Int, Not, Or, Solver, is_true, sat

from solver import Cell, ParseError, Record, Springs


def cell_var(index: int) -> BoolRef:
    return Bool(f"cell_{index}")


def make_solver(record: Record) -> Solver:
    s = Solver()

    n = len(record.pattern)
    cells = [cell_var(i) for i in range(n)]
    starts = [Int(f"start_{j}") for j in range(len(record.clues))]

    # Runs lie within the pattern, in clue order, separated by at least one gap.
    for j, (start, length) in enumerate(zip(starts, record.clues)):
        s.add(0 <= start, start + length <= n)
        if j > 0:
            s.add(starts[j - 1] + record.clues[j - 1] < start)

    # A cell is a block exactly when one of the runs covers it.
    for i, cell in enumerate(cells):
        covered = [
            And(start <= i, i < start + length)
            for start, length in zip(starts, record.clues)
        ]
        if covered:
            s.add(cell == Or(covered))
        else:
            s.add(Not(cell))

    # Known cells are fixed.
    for cell, value in zip(cells, record.pattern):
        if value == Cell.BLOCK:
            s.add(cell)
        elif value == Cell.GAP:
            s.add(Not(cell))

    return s


def model_to_pattern(record: Record, model) -> tuple[Cell, ...]:
    return tuple(
        Cell.BLOCK
        if is_true(model.evaluate(cell_var(i), model_completion=True))
        else Cell.GAP
        for i in range(len(record.pattern))
    )


def count_models(record: Record, limit: Optional[int] = None) -> int:
    """Count the arrangements of a record, stopping early at `limit`."""
    s = make_solver(record)
    cells = [cell_var(i) for i in range(len(record.pattern))]

    num_models = 0
    while s.check() == sat:
        num_models += 1
        if limit is not None and num_models >= limit:
            break
        if not cells:
            # The empty pattern has a single arrangement.
            break

        # Forbid the arrangement we just found. The run starts follow from
        # the cells, so blocking the cells alone is enough.
        model = s.model()
        s.add(
            Or([cell != model.evaluate(cell, model_completion=True) for cell in cells])
        )

    return num_models


if __name__ == "__main__":
    input_str = "".join(fileinput.input())
    try:
        springs = Springs.from_string(input_str)
    except ParseError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)

    solution = 0
    for i, record in enumerate(springs):
        num_models = count_models(record)
        print(f"Record #{i}: {record} -> {num_models}")
        solution += num_models
    print(f"Total arrangements: {solution}")
