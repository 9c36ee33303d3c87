import random
import subprocess
from unittest.mock import patch

import pytest

from botplugins.guessgame import (
    NO_PERMISSION,
    MusicInfo,
    cut_music,
    draw_local_music,
    game_match,
    pick_local_music,
)


@pytest.fixture
def song():
    return MusicInfo.parse("Sunny - Jay - Album&Live.mp3")


def test_parse_three_fields(song):
    assert song.title == "Sunny"
    assert song.artist == "Jay"
    assert song.extra == "Album\nLive"
    assert song.answer() == "歌名:Sunny\n歌手:Jay\n其他信息:\nAlbum\nLive"


def test_parse_two_fields():
    info = MusicInfo.parse("Rain - Ann.wav")
    assert info.extra is None
    assert info.answer() == "歌名:Rain\n歌手:Ann"


def test_parse_rejects_extension():
    with pytest.raises(ValueError):
        MusicInfo.parse("a - b.flac")


def test_parse_rejects_naming():
    with pytest.raises(ValueError):
        MusicInfo.parse("song.mp3")


def test_title_guess_wins(song):
    result = game_match("-Sun", 1, 1, song, 0, 0)
    assert result.finished
    assert song.answer() in result.text


def test_artist_case_insensitive(song):
    result = game_match("-jay", 2, 1, song, 0, 0)
    assert result.finished
    assert "歌手名" in result.text


def test_extra_guess(song):
    result = game_match("-Album", 2, 1, song, 0, 0)
    assert result.finished


def test_extra_ignored_with_more_fields():
    info = MusicInfo.parse("T - A - X - Y.mp3")
    result = game_match("-X", 2, 1, info, 0, 0)
    assert not result.finished


def test_cancel(song):
    assert game_match("-取消", 1, 1, song, 0, 0).finished
    other = game_match("-取消", 2, 1, song, 0, 0)
    assert not other.finished
    assert other.text == NO_PERMISSION


def test_hint_counts(song):
    first = game_match("-提示", 1, 1, song, 0, 0)
    assert (first.tick_times, first.finished) == (1, False)
    last = game_match("-提示", 1, 1, song, 0, 2)
    assert last.text == "已经没有提示了哦"
    assert last.tick_times == 3


def test_wrong_answers_run_out(song):
    answers, ticks = 0, 0
    results = []
    for _ in range(6):
        result = game_match("-nope", 1, 1, song, answers, ticks)
        answers, ticks = result.answer_times, result.tick_times
        results.append(result)
    assert [r.finished for r in results] == [False] * 5 + [True]
    assert results[-1].answer_times == 6
    assert song.answer() in results[-1].text


def test_pick_single_file(tmp_path):
    (tmp_path / "a.mp3").write_bytes(b"")
    assert pick_local_music(list(tmp_path.iterdir()), 10, random.Random(0)) == "a.mp3"


def test_pick_only_folders(tmp_path):
    (tmp_path / "x").mkdir()
    (tmp_path / "y").mkdir()
    assert pick_local_music(sorted(tmp_path.iterdir()), 10, random.Random(1)) == ""


def test_pick_mixed(tmp_path):
    (tmp_path / "sub").mkdir()
    for name in ("a.mp3", "b.mp3"):
        (tmp_path / name).write_bytes(b"")
    rng = random.Random(3)
    picks = {pick_local_music(sorted(tmp_path.iterdir()), 10, rng) for _ in range(20)}
    assert picks <= {"a.mp3", "b.mp3", ""}
    assert picks & {"a.mp3", "b.mp3"}


def test_pick_empty():
    with pytest.raises(ValueError):
        pick_local_music([], 10, random.Random(0))


def test_draw_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        draw_local_music(tmp_path, "none", random.Random(0))


def test_draw_empty(tmp_path):
    (tmp_path / "list").mkdir()
    with pytest.raises(ValueError):
        draw_local_music(tmp_path, "list", random.Random(0))


def test_draw_one(tmp_path):
    (tmp_path / "list").mkdir()
    (tmp_path / "list" / "s - a.mp3").write_bytes(b"")
    folder, name = draw_local_music(tmp_path, "list", random.Random(0))
    assert folder == tmp_path / "list"
    assert name == "s - a.mp3"


@patch("botplugins.guessgame.subprocess.run")
def test_cut_music_args(run, tmp_path):
    run.return_value = subprocess.CompletedProcess([], 0, b"", b"")
    clips = cut_music(tmp_path / "song.mp3", tmp_path / "out")
    assert [c.name for c in clips] == ["0.wav", "1.wav", "2.wav"]
    args = run.call_args[0][0]
    assert args[0] == "ffmpeg"
    assert "00:00:05" in args and "00:00:30" in args and "00:01:00" in args
    assert args[-1] == "-hide_banner"
    assert (tmp_path / "out").is_dir()


@patch("botplugins.guessgame.subprocess.run")
def test_cut_music_failure(run, tmp_path):
    run.return_value = subprocess.CompletedProcess([], 1, b"", b"boom")
    with pytest.raises(RuntimeError, match="boom"):
        cut_music(tmp_path / "song.mp3", tmp_path / "out")