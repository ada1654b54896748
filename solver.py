"""
Solver for Hot Springs condition records.

Usage: python3 solver.py [--unfold [K]] [--jobs N] [--show] [--no-progress] [FILE ...] < records.txt

Each line of the input is a record: a row of springs followed by the sizes of
the contiguous groups of damaged springs, e.g.

    ?###???????? 3,2,1

The springs are:

- `#` a damaged spring (a block cell).
- `.` an operational spring (a gap cell).
- `?` unknown, may be either.

The goal is to count the ways the unknown springs can be filled in so that the
groups of damaged springs, read left to right, have exactly the given sizes.
With `--unfold` every record is first replaced by five copies of itself joined
by `?`, with the group sizes repeated five times.
"""

import argparse
import fileinput
import sys
from concurrent.futures import ProcessPoolExecutor
from enum import Enum
from typing import Iterable, Iterator, Optional, Sequence

from tqdm import tqdm

DEFAULT_UNFOLD = 5


class Cell(Enum):
    BLOCK = "#"
    GAP = "."
    UNKNOWN = "?"

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]


_GLYPHS = {Cell.BLOCK: "█", Cell.GAP: "·", Cell.UNKNOWN: "░"}

# Cells joining the copies of a pattern when a record is unfolded.
SEPARATOR = (Cell.UNKNOWN,)


class ParseError(ValueError):
    """A record line could not be read.

    `line` and `column` are 1-based and point at the offending text.
    """

    def __init__(self, message: str, line: int = 1, column: int = 1):
        super().__init__(f"line {line}, column {column}: {message}")
        self.message = message
        self.line = line
        self.column = column


def format_pattern(cells: Iterable[Cell]) -> str:
    return "".join(cell.value for cell in cells)


def run_lengths(cells: Iterable[Cell]) -> list[int]:
    """Return the lengths of the maximal block runs of a resolved pattern."""
    lengths = []
    run = 0
    for cell in cells:
        if cell == Cell.UNKNOWN:
            raise ValueError("Run lengths are only defined for resolved patterns")
        if cell == Cell.BLOCK:
            run += 1
        elif run:
            lengths.append(run)
            run = 0
    if run:
        lengths.append(run)
    return lengths


class Record:
    """Record is one row of springs together with its group sizes (clues).

    Records are never modified after construction; `unfold` builds a new one.
    """

    def __init__(self, pattern: Sequence[Cell], clues: Sequence[int]):
        self.pattern = tuple(pattern)
        self.clues = tuple(clues)
        for clue in self.clues:
            if clue < 1:
                raise ValueError(f"Run lengths must be positive, got {clue}")

    @staticmethod
    def from_string(s: str, line: int = 1) -> "Record":
        stripped = s.rstrip()
        body = stripped.lstrip()
        offset = len(stripped) - len(body)
        if not body:
            raise ParseError("empty pattern", line, offset + 1)

        parts = body.split(maxsplit=1)
        pattern_text = parts[0]
        pattern = []
        for i, char in enumerate(pattern_text):
            try:
                pattern.append(Cell(char))
            except ValueError:
                raise ParseError(
                    f"unrecognized cell character {char!r}", line, offset + i + 1
                ) from None

        if len(parts) < 2:
            raise ParseError("missing clue list", line, offset + len(pattern_text) + 1)

        clue_text = parts[1]
        column = offset + body.index(clue_text, len(pattern_text)) + 1
        clues = []
        for piece in clue_text.split(","):
            if not (piece.isascii() and piece.isdigit()):
                raise ParseError(f"invalid run length {piece!r}", line, column)
            clue = int(piece)
            if clue < 1:
                raise ParseError(f"non-positive run length {clue}", line, column)
            clues.append(clue)
            column += len(piece) + 1

        return Record(pattern, clues)

    def unfold(self, k: int = DEFAULT_UNFOLD) -> "Record":
        """Replicate the record k times.

        The copies of the pattern are joined by a single unknown cell, the
        clue lists are simply concatenated.
        """
        if k < 1:
            raise ValueError(f"Cannot unfold a record {k} times")
        pattern = list(self.pattern)
        for _ in range(k - 1):
            pattern.extend(SEPARATOR)
            pattern.extend(self.pattern)
        return Record(pattern, self.clues * k)

    def arrangements(
        self, index: int = 0, cells: Optional[list[Cell]] = None
    ) -> Iterator[tuple[Cell, ...]]:
        """Enumerate every resolution of the unknown cells matching the clues.

        This tries both values for each unknown cell in turn, so it is
        exponential in the number of unknowns. Use `count` for anything but
        small records.
        """
        if cells is None:
            cells = list(self.pattern)

        # Find next unknown cell
        while index < len(cells) and cells[index] != Cell.UNKNOWN:
            index += 1

        if index == len(cells):
            if run_lengths(cells) == list(self.clues):
                yield tuple(cells)
            return

        for cell in (Cell.BLOCK, Cell.GAP):
            cells[index] = cell
            for arrangement in self.arrangements(index + 1, cells):
                yield arrangement

        cells[index] = Cell.UNKNOWN

    def _render_cell(self, cell: Cell) -> str:
        if cell == Cell.GAP:
            return cell.glyph

        bg_color = 44 if cell == Cell.UNKNOWN else 40
        return f"\x1b[1;37;{bg_color}m{cell.glyph}\x1b[0m"

    def print(self) -> None:
        cells = "".join(self._render_cell(cell) for cell in self.pattern)
        print(f"{cells} {','.join(str(clue) for clue in self.clues)}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.pattern == other.pattern and self.clues == other.clues

    def __hash__(self) -> int:
        return hash((self.pattern, self.clues))

    def __str__(self) -> str:
        return f"{format_pattern(self.pattern)} {','.join(str(clue) for clue in self.clues)}"

    def __repr__(self) -> str:
        return f"Record.from_string({str(self)!r})"


class Springs:
    """All the records of one input, in input order.

    Every line is a record, a blank line is reported as an empty pattern.
    """

    def __init__(self, records: Iterable[Record]):
        self.records = list(records)

    @staticmethod
    def from_string(s: str) -> "Springs":
        records = []
        for line, text in enumerate(s.splitlines(), start=1):
            records.append(Record.from_string(text, line))
        return Springs(records)

    def unfold(self, k: int = DEFAULT_UNFOLD) -> "Springs":
        return Springs(record.unfold(k) for record in self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)


Key = tuple[int, int, Optional[int]]


class ArrangementCounter:
    """Count the arrangements of a single record without enumerating them.

    The search walks the cells left to right while tracking the clue being
    matched. A clue state is the pair (clue_index, remaining):

    - clue_index == len(clues): every clue is used, only gaps may follow.
    - remaining is None: the run for the clue has not started yet.
    - remaining is an int: inside the run, `remaining` more blocks and then a
      gap are required.

    The number of completions only depends on the current cell index and the
    clue state, never on how they were reached, so results are memoized by
    (cell_index, clue_index, remaining). An unknown cell is the only place the
    search branches.

    Subproblems are evaluated with an explicit stack instead of recursion, so
    the pattern length is not limited by the interpreter's recursion limit.

    A gap cell is appended to the pattern so the last run is always closed by
    a gap.
    """

    def __init__(self, record: Record):
        self.record = record
        self.cells = record.pattern + (Cell.GAP,)
        self.clues = record.clues
        self.memo: dict[Key, int] = {}
        self.num_calls = 0
        self.num_memo_hits = 0

    def count(self) -> int:
        return self._count((0, 0, None))

    def _count(self, root: Key) -> int:
        if root in self.memo:
            self.num_memo_hits += 1
            return self.memo[root]

        # Entries are (key, None) until the key is expanded, then
        # (key, successors) until every successor has a count.
        stack: list[tuple[Key, Optional[list[Key]]]] = [(root, None)]
        while stack:
            key, successors = stack.pop()
            if successors is not None:
                self.memo[key] = sum(self.memo[s] for s in successors)
                continue

            if key in self.memo:
                # Pushed by two parents before it was evaluated.
                self.num_memo_hits += 1
                continue

            self.num_calls += 1
            index, clue_index, remaining = key
            if index == len(self.cells):
                # Out of cells: only valid if the clues ran out as well.
                self.memo[key] = 1 if clue_index == len(self.clues) else 0
                continue

            successors = self._successors(index, clue_index, remaining)
            stack.append((key, successors))
            for successor in successors:
                if successor in self.memo:
                    self.num_memo_hits += 1
                else:
                    stack.append((successor, None))

        return self.memo[root]

    def _successors(
        self, index: int, clue_index: int, remaining: Optional[int]
    ) -> list[Key]:
        """Return the subproblems whose counts add up to the count of a key."""
        cell = self.cells[index]
        if cell == Cell.UNKNOWN:
            options = (Cell.BLOCK, Cell.GAP)
        else:
            options = (cell,)

        successors = []
        for option in options:
            successor = self._step(option, index, clue_index, remaining)
            if successor is not None:
                successors.append(successor)
        return successors

    def _step(
        self, cell: Cell, index: int, clue_index: int, remaining: Optional[int]
    ) -> Optional[Key]:
        """Place a resolved `cell` at `index`.

        Returns the next subproblem, or None if the cell cannot go there.
        """
        if clue_index == len(self.clues):
            if cell == Cell.BLOCK:
                return None
            return (index + 1, clue_index, None)

        if remaining is None:
            if cell == Cell.GAP:
                return (index + 1, clue_index, None)
            # A run starts here, the same cell is its first block.
            remaining = self.clues[clue_index]

        if cell == Cell.GAP:
            if remaining > 0:
                return None
            return (index + 1, clue_index + 1, None)

        if remaining == 0:
            return None
        return (index + 1, clue_index, remaining - 1)


def count(record: Record) -> int:
    return ArrangementCounter(record).count()


def unfold(record: Record, k: int = DEFAULT_UNFOLD) -> Record:
    return record.unfold(k)


def total(records: Iterable[Record], jobs: int = 1, progress: bool = False) -> int:
    """Sum the arrangement counts of all records.

    Records are independent, so with jobs > 1 they are counted in a pool of
    worker processes. With `progress` a progress bar is drawn on stderr.
    """
    records = list(records)
    if jobs > 1:
        with ProcessPoolExecutor(max_workers=jobs) as executor:
            counts = executor.map(count, records)
            return sum(_progress_bar(counts, len(records), progress))
    return sum(_progress_bar(map(count, records), len(records), progress))


def _progress_bar(iterable: Iterable, size: int, enabled: bool = True) -> tqdm:
    return tqdm(
        iterable,
        total=size,
        desc="Counting records",
        file=sys.stderr,
        disable=not enabled,
    )


def create_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hot Springs arrangement counter")
    parser.add_argument(
        "files",
        nargs="*",
        help="files with one record per line (default: read from stdin)",
    )
    parser.add_argument(
        "--unfold",
        type=int,
        nargs="?",
        const=DEFAULT_UNFOLD,
        default=1,
        metavar="K",
        help=f"replicate every record K times before counting (default K: {DEFAULT_UNFOLD})",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="number of worker processes counting records (default: 1)",
    )
    parser.add_argument(
        "--show", action="store_true", help="print every record before counting"
    )
    parser.add_argument(
        "--no-progress",
        dest="progress",
        action="store_false",
        help="do not draw a progress bar on stderr",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = create_arg_parser()
    args = parser.parse_args(argv)
    if args.unfold < 1:
        parser.error("--unfold must be at least 1")

    try:
        with fileinput.input(files=args.files or ("-",), encoding="utf-8") as lines:
            input_str = "".join(lines)
        springs = Springs.from_string(input_str)
    except (OSError, UnicodeDecodeError, ParseError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    springs = springs.unfold(args.unfold)

    if args.jobs > 1:
        if args.show:
            for record in springs:
                record.print()
        solution = total(springs, jobs=args.jobs, progress=args.progress)
    else:
        solution = 0
        num_calls = 0
        num_memo_hits = 0
        records = _progress_bar(springs, len(springs), args.progress)
        for i, record in enumerate(records):
            counter = ArrangementCounter(record)
            arrangements = counter.count()
            if args.show:
                print(f"Record #{i}: ", end="")
                record.print()
                print(f"  arrangements: {arrangements}")
            solution += arrangements
            num_calls += counter.num_calls
            num_memo_hits += counter.num_memo_hits
        print(f"Num calls: {num_calls}, memo hits: {num_memo_hits}")

    print(f"Total arrangements: {solution}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
