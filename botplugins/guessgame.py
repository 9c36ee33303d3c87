"""Guess-the-song game: track naming, answer matching and clip preparation."""

from __future__ import annotations

import os
import random
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

MUSIC_TYPES = "mp3;MP3;wav;WAV;amr;AMR;3gp;3GP;3gpp;3GPP;acc;ACC"
CUT_TIMES = ("00:00:05", "00:00:30", "00:01:00")
CLIP_SECONDS = "10"
MAX_ANSWERS = 6
MAX_CLIPS = 2
MAX_PICK_DEPTH = 10

NO_PERMISSION = "你无权限取消"


class _Entry(Protocol):
    @property
    def name(self) -> str: ...

    def is_dir(self) -> bool: ...


@dataclass(frozen=True)
class MusicInfo:
    """A track named "title - artist - other", as stored in a playlist folder."""

    file_name: str
    title: str
    artist: str
    extra: str | None = None
    field_count: int = 2

    @classmethod
    def parse(cls, file_name: str) -> MusicInfo:
        """Read the track information out of a file name.

        Raises ValueError when the extension is not a supported audio type or
        the name does not follow the naming rule.
        """
        ext = file_name.split(".")[-1]
        if ext not in MUSIC_TYPES:
            raise ValueError(f"{file_name}\n该歌曲不是音乐后缀")
        parts = file_name.replace("." + ext, "").split(" - ")
        if len(parts) == 1:
            raise ValueError(f"{file_name}\n该歌曲命名不符合命名规则")
        extra = parts[2].replace("&", "\n") if len(parts) > 2 else None
        return cls(
            file_name=file_name,
            title=parts[0],
            artist=parts[1],
            extra=extra,
            field_count=len(parts),
        )

    def answer(self) -> str:
        """The text revealing the answer."""
        text = f"歌名:{self.title}\n歌手:{self.artist}"
        if self.extra is not None:
            text += "\n其他信息:\n" + self.extra
        return text


@dataclass(frozen=True)
class MatchResult:
    """Reply to one guess and the updated counters."""

    text: str
    answer_times: int
    tick_times: int
    finished: bool


def _hits(field: str, answer: str) -> bool:
    return answer in field or field.casefold() == answer.casefold()


def game_match(
    answer: str,
    user_id: int,
    beginner: int,
    info: MusicInfo,
    answer_times: int,
    tick_times: int,
) -> MatchResult:
    """Judge one "-guess" message of the game."""
    guess = answer.replace("-", "", 1)
    reveal = info.answer()
    if guess == "取消":
        if user_id == beginner:
            return MatchResult(
                f"游戏已取消,猜歌答案是\n{reveal}\n\n\n下面欣赏猜歌的歌曲",
                answer_times,
                tick_times,
                True,
            )
        return MatchResult(NO_PERMISSION, answer_times, tick_times, False)
    if guess == "提示":
        tick_times += 1
        if tick_times > MAX_CLIPS:
            return MatchResult("已经没有提示了哦", answer_times, tick_times, False)
        return MatchResult("再听这段音频,要仔细听哦", answer_times, tick_times, False)
    if _hits(info.title, guess):
        what = "歌曲名"
    elif _hits(info.artist, guess):
        what = "歌手名"
    elif info.field_count == 3 and info.extra is not None and _hits(info.extra, guess):
        what = "相关信息"
    else:
        answer_times += 1
        tick_times += 1
        if tick_times > MAX_CLIPS and answer_times < MAX_ANSWERS:
            return MatchResult(
                f"答案不对哦,还有{MAX_ANSWERS - answer_times}次答题,加油啊~",
                answer_times,
                tick_times,
                False,
            )
        if tick_times > MAX_CLIPS:
            return MatchResult(
                f"次数到了,没能猜出来。答案是\n{reveal}\n\n下面欣赏猜歌的歌曲",
                answer_times,
                tick_times,
                True,
            )
        return MatchResult("答案不对,再听这段音频,要仔细听哦", answer_times, tick_times, False)
    return MatchResult(
        f"太棒了,你猜对{what}了！答案是\n{reveal}\n\n下面欣赏猜歌的歌曲",
        answer_times,
        tick_times,
        True,
    )


def pick_local_music(
    entries: Sequence[_Entry], max_depth: int, rng: random.Random
) -> str:
    """Pick a random file name from ``entries``; "" if only folders turn up.

    Each folder drawn uses up one of ``max_depth`` attempts.
    """
    if not entries:
        raise ValueError("本地歌单数据为0")
    if len(entries) == 1:
        only = entries[0]
        return "" if only.is_dir() else only.name
    while True:
        entry = entries[rng.randrange(len(entries))]
        if not entry.is_dir():
            return entry.name
        max_depth -= 1
        if max_depth <= 0:
            return ""


def draw_local_music(
    music_path: str | os.PathLike[str], list_name: str, rng: random.Random
) -> tuple[Path, str]:
    """Draw a track from a local playlist; returns its folder and file name."""
    folder = Path(music_path) / list_name
    if not folder.exists():
        raise FileNotFoundError("指定的歌单不存在,可发送“歌单列表”查看歌单列表")
    entries = sorted(folder.iterdir(), key=lambda p: p.name)
    if not entries:
        raise ValueError("本地歌单数据为0")
    name = pick_local_music(entries, MAX_PICK_DEPTH, rng)
    if not name:
        raise ValueError("抽取歌曲轮空了,请重试")
    return folder, name


def cut_music(
    music_file: str | os.PathLike[str], output_dir: str | os.PathLike[str]
) -> list[Path]:
    """Cut three ten-second WAV clips out of a track with ffmpeg."""
    out = Path(output_dir)
    try:
        out.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"[生成歌曲目录错误]ERROR: {exc}") from exc
    out = out.resolve()
    clips = [out / f"{index}.wav" for index in range(len(CUT_TIMES))]
    args = ["ffmpeg", "-y", "-i", os.fspath(music_file)]
    for start, clip in zip(CUT_TIMES, clips):
        args += ["-ss", start, "-t", CLIP_SECONDS, str(clip)]
    args.append("-hide_banner")
    try:
        result = subprocess.run(args, capture_output=True)
    except OSError as exc:
        raise RuntimeError(f"[生成歌曲错误]ERROR: {exc}") from exc
    if result.returncode != 0:
        stderr = result.stderr
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace")
        raise RuntimeError(f"[生成歌曲错误]ERROR: {stderr}")
    return clips