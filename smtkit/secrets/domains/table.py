"""Side-by-side presence table for two sets of names."""
from typing import Iterable, List


def _spaces(n: int) -> str:
    return " " * n


def build_comparison_table(left_header: str, left: Iterable[str],
                           right_header: str, right: Iterable[str]) -> str:
    """
    Render which names appear in the left set, the right set, or both.

    Both inputs are de-duplicated and sorted, then walked with a merge join so
    every distinct name gets exactly one row, in lexicographic order. Markers
    sit under the middle of each header:

    |        HEADER1 HEADER2
    |        ------- -------
    |SECRET1    X       X
    |SECRET2            X
    |SECRET3    X

    Args:
        left_header: Title of the left marker column
        left: Names present on the left side
        right_header: Title of the right marker column
        right: Names present on the right side

    Returns:
        The table, one newline-terminated line per row. With both inputs
        empty only the header and separator lines are returned.
    """
    xs: List[str] = sorted(set(left))
    ys: List[str] = sorted(set(right))

    name_width = max((len(name) for name in xs + ys), default=0)
    left_width = max(len(left_header), 3)
    right_width = max(len(right_header), 3)

    to_left_center = left_width // 2
    left_to_right_center = (left_width - to_left_center - 1) + 1 + right_width // 2
    after_right_center = right_width - right_width // 2 - 1

    lines = [
        f"{_spaces(name_width)} {left_header} {right_header}\n",
        f"{_spaces(name_width)} {'-' * left_width} {'-' * right_width}\n",
    ]

    def row(name: str, in_left: bool, in_right: bool) -> str:
        return (
            name.ljust(name_width)
            + " "
            + _spaces(to_left_center)
            + ("X" if in_left else " ")
            + _spaces(left_to_right_center)
            + ("X" if in_right else " ")
            + _spaces(after_right_center)
            + "\n"
        )

    i = j = 0
    while i < len(xs) and j < len(ys):
        if xs[i] == ys[j]:
            lines.append(row(xs[i], True, True))
            i += 1
            j += 1
        elif xs[i] < ys[j]:
            lines.append(row(xs[i], True, False))
            i += 1
        else:
            lines.append(row(ys[j], False, True))
            j += 1
    for name in xs[i:]:
        lines.append(row(name, True, False))
    for name in ys[j:]:
        lines.append(row(name, False, True))

    return "".join(lines)
