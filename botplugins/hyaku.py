"""The hundred poems of the Ogura anthology, read from their CSV table."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, fields

POEM_COUNT = 100

_LABELS = ("番号", "歌人", "上の句", "下の句", "上の句ひらがな", "下の句ひらがな")
_MARKS = ("●", "◉", "○", "○", "◎", "◎")


@dataclass(frozen=True)
class Poem:
    """One poem: its number, poet and both halves in kanji and in kana."""

    number: str
    poet: str
    upper: str
    lower: str
    upper_kana: str
    lower_kana: str

    def __str__(self) -> str:
        values = (getattr(self, f.name) for f in fields(self))
        return "".join(
            f"{mark}{label}：{value}\n"
            for mark, label, value in zip(_MARKS, _LABELS, values)
        )


def load_poems(csv_text: str) -> list[Poem]:
    """Parse the anthology table, checking it holds all poems in order."""
    records = list(csv.reader(io.StringIO(csv_text)))[1:]
    if len(records) != POEM_COUNT:
        raise ValueError("invalid csvfile")
    poems = []
    for position, record in enumerate(records, start=1):
        if len(record) != len(_LABELS):
            raise ValueError("invalid csvfile")
        if int(record[0]) != position:
            raise ValueError("invalid csvfile")
        poems.append(Poem(*record))
    return poems