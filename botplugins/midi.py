"""Note strings to MIDI and back, plus WAV rendering through timidity."""

from __future__ import annotations

import io
import math
import os
import subprocess
from pathlib import Path

import mido

TICKS_PER_QUARTER = 960
TEMPO_BPM = 72
INSTRUMENT = "Violin"
VELOCITY = 120
DEFAULT_TIMBRE = 40
DEFAULT_LEVEL = 5
MAX_LEVEL = 10

NOTE_MAP = {
    "C": 60,
    "Db": 61,
    "D": 62,
    "Eb": 63,
    "E": 64,
    "F": 65,
    "Gb": 66,
    "G": 67,
    "Ab": 68,
    "A": 69,
    "Bb": 70,
    "B": 71,
}

_NOTE_LETTERS = frozenset("ABCDEFG")


def octave(base: int, level: int) -> int:
    """MIDI note for pitch class ``base`` in octave ``level`` (byte arithmetic)."""
    base &= 0xFF
    level &= 0xFF
    if level > MAX_LEVEL:
        level = MAX_LEVEL
    if level == 0:
        return base
    result = (base + 12 * level) & 0xFF
    if result > 127:
        result -= 12
    return result


def note_name(note: int) -> str:
    """Pitch-class name of a MIDI note, such as "C" or "Db"."""
    for name, value in NOTE_MAP.items():
        if value % 12 == note % 12:
            return name
    return ""


def parse_note(text: str) -> int:
    """MIDI note for a single answer such as "C#6"; unknown characters are ignored."""
    base = 0
    level = 0
    for char in text.replace(" ", ""):
        if char in _NOTE_LETTERS:
            base = NOTE_MAP[char] % 12
        elif char == "b":
            base = (base - 1) & 0xFF
        elif char == "#":
            base = (base + 1) & 0xFF
        elif "0" <= char <= "9":
            level = (level * 10 + int(char)) & 0xFF
    if level == 0:
        level = DEFAULT_LEVEL
    return octave(base, level)


def _ticks(length: int) -> int:
    if length >= 0:
        return TICKS_PER_QUARTER * (1 << length)
    return TICKS_PER_QUARTER // (1 << -length)


def _parse_length(digits: str) -> int:
    try:
        return int(digits)
    except ValueError:
        return 0


def build_midi(text: str, timbre: int = DEFAULT_TIMBRE) -> mido.MidiFile:
    """Build a one-track MIDI file from a note string.

    A note is a letter A-G, optionally followed by "b" or "#", an octave
    number and "<n" giving a length of 2**n quarter notes.  "R" is a rest
    taking the same length suffix.  Spaces are ignored.
    """
    track = mido.MidiTrack()
    track.append(mido.MetaMessage("time_signature", numerator=4, denominator=4, time=0))
    track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(TEMPO_BPM), time=0))
    track.append(mido.MetaMessage("instrument_name", name=INSTRUMENT, time=0))
    track.append(mido.Message("program_change", channel=0, program=timbre, time=0))

    chars = text.replace(" ", "")
    size = len(chars)
    delay = 0
    i = 0
    while i < size:
        base = 0
        level = 0
        rest = False
        length_chars: list[str] = []
        while True:
            char = chars[i]
            if char == "R":
                rest = True
                i += 1
            elif char in _NOTE_LETTERS:
                base = NOTE_MAP[char] % 12
                i += 1
            elif char == "b":
                base = (base - 1) & 0xFF
                i += 1
            elif char == "#":
                base = (base + 1) & 0xFF
                i += 1
            elif "0" <= char <= "9":
                level = (level * 10 + int(char)) & 0xFF
                i += 1
            elif char == "<":
                i += 1
                while i < size and (chars[i] == "-" or "0" <= chars[i] <= "9"):
                    length_chars.append(chars[i])
                    i += 1
            else:
                raise ValueError(f"无法解析第{i}个位置的{char}字符")
            if i >= size or chars[i] in _NOTE_LETTERS or chars[i] == "R":
                break
        length = _parse_length("".join(length_chars))
        if rest:
            delay = _ticks(length)
            continue
        if level == 0:
            level = DEFAULT_LEVEL
        note = octave(base, level)
        track.append(
            mido.Message("note_on", channel=0, note=note, velocity=VELOCITY, time=delay)
        )
        track.append(
            mido.Message("note_off", channel=0, note=note, velocity=0, time=_ticks(length))
        )
        delay = 0
    track.append(mido.MetaMessage("end_of_track", time=0))

    midi = mido.MidiFile(type=0, ticks_per_beat=TICKS_PER_QUARTER)
    midi.tracks.append(track)
    return midi


def write_midi(path: str | os.PathLike[str], text: str, timbre: int = DEFAULT_TIMBRE) -> Path:
    """Write the MIDI file for ``text`` to ``path`` unless it already exists."""
    target = Path(path)
    if not target.exists():
        build_midi(text, timbre).save(str(target))
    return target


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _power(length: float) -> int | None:
    """Rounded base-2 logarithm of a length in quarters; None for no length."""
    if length <= 0:
        return None
    return _round_half_away(math.log2(length))


def midi_to_text(data: bytes, track_no: int) -> str:
    """Turn one track of a MIDI file back into a note string."""
    midi = mido.MidiFile(file=io.BytesIO(data))
    if not 0 <= track_no < len(midi.tracks):
        return ""
    metric = float(TICKS_PER_QUARTER)
    start_ticks = 0.0
    end_ticks = 0.0
    start_note = 0
    end_note = 0
    absolute = 0
    parts: list[str] = []
    for msg in midi.tracks[track_no]:
        absolute += msg.time
        if msg.is_meta:
            continue
        sounding = msg.type == "note_on" and msg.velocity > 0
        if sounding:
            start_ticks = float(absolute)
            start_note = msg.note
        if msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
            end_ticks = float(absolute)
            end_note = msg.note
            if start_note == end_note:
                parts.append(note_name(msg.note))
                level = msg.note // 12
                if level != DEFAULT_LEVEL:
                    parts.append(str(level))
                power = _power((end_ticks - start_ticks) / metric)
                if power is not None and power >= -4 and power != 0:
                    parts.append(f"<{power}")
                start_note = 0
                end_note = 0
        if sounding and start_ticks > end_ticks:
            power = _power((start_ticks - end_ticks) / metric)
            if power == 0:
                parts.append("R")
            elif power is not None and power >= -4:
                parts.append(f"R<{power}")
    return "".join(parts)


def render_wav(midi_path: str | os.PathLike[str]) -> Path:
    """Render a MIDI file to WAV next to it with timidity and return its path."""
    source = os.fspath(midi_path)
    wav = source.replace(".mid", ".wav")
    subprocess.run(
        ["timidity", os.path.abspath(source), "-Ow", "-o", os.path.abspath(wav)],
        check=True,
        capture_output=True,
    )
    return Path(wav)


def text_to_music(
    text: str, midi_path: str | os.PathLike[str], timbre: int = DEFAULT_TIMBRE
) -> Path:
    """Write the MIDI file for ``text`` and render it to WAV."""
    return render_wav(write_midi(midi_path, text, timbre))


def validate_timbre(value: int | str) -> int:
    """Check an instrument number given by a user; it must lie in 0-127."""
    timbre = int(value)
    if timbre < 0 or timbre > 127:
        raise ValueError("音色应该在0~127之间")
    return timbre