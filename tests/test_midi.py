import io
from pathlib import Path
from unittest import mock

import mido
import pytest

from botplugins import midi


def _to_bytes(midi_file: mido.MidiFile) -> bytes:
    buffer = io.BytesIO()
    midi_file.save(file=buffer)
    return buffer.getvalue()


def _round_trip(text: str) -> str:
    return midi.midi_to_text(_to_bytes(midi.build_midi(text)), 0)


def test_note_name_of_middle_c():
    assert midi.note_name(60) == "C"
    assert midi.note_name(61) == "Db"


def test_note_name_ignores_octave():
    for note in range(0, 128):
        assert midi.note_name(note) == midi.note_name(note % 12 + 60)


def test_parse_note_default_octave():
    assert midi.parse_note("C") == 60
    assert midi.parse_note("C5") == midi.parse_note("C")


def test_parse_note_ignores_spaces():
    assert midi.parse_note("C # 6") == midi.parse_note("C#6")


@pytest.mark.parametrize("target", range(55, 89))
def test_parse_note_inverts_answer(target):
    answer = midi.note_name(target) + str(target // 12)
    assert midi.parse_note(answer) == target


def test_octave_zero_level_keeps_base():
    for base in range(12):
        assert midi.octave(base, 0) == base


def test_octave_level_is_capped():
    for base in range(12):
        assert midi.octave(base, 20) == midi.octave(base, 10)


def test_octave_stays_in_midi_range():
    for base in range(13):
        for level in range(11):
            assert 0 <= midi.octave(base, level) <= 127


def test_build_midi_resolution_and_timbre():
    built = midi.build_midi("CDE", 40)
    assert built.ticks_per_beat == 960
    programs = [m.program for m in built.tracks[0] if m.type == "program_change"]
    assert programs == [40]


def test_build_midi_counts_notes():
    built = midi.build_midi("CCGGAAGR FFEEDDCR")
    notes_on = [m for m in built.tracks[0] if m.type == "note_on"]
    assert len(notes_on) == 14


def test_build_midi_rejects_unknown_character():
    with pytest.raises(ValueError):
        midi.build_midi("CX")


@pytest.mark.parametrize("text", ["CDE", "C<1", "CRD", "C6Db", "E<-2", "C4G", "AR<1B"])
def test_text_round_trip(text):
    assert _round_trip(text) == text


def test_round_trip_drops_spaces():
    assert _round_trip("C D E") == "CDE"


def test_midi_to_text_missing_track():
    assert midi.midi_to_text(_to_bytes(midi.build_midi("CDE")), 3) == ""


def test_write_midi_does_not_overwrite(tmp_path):
    target = tmp_path / "song.mid"
    midi.write_midi(target, "CDE")
    midi.write_midi(target, "GAB")
    assert midi.midi_to_text(target.read_bytes(), 0) == "CDE"


def test_validate_timbre():
    assert midi.validate_timbre("40") == 40
    assert midi.validate_timbre(0) == 0
    with pytest.raises(ValueError):
        midi.validate_timbre(128)
    with pytest.raises(ValueError):
        midi.validate_timbre(-1)
    with pytest.raises(ValueError):
        midi.validate_timbre("abc")


@mock.patch("botplugins.midi.subprocess.run")
def test_render_wav_calls_timidity(run, tmp_path):
    source = tmp_path / "a_midicreate.mid"
    wav = midi.render_wav(source)
    assert wav == Path(str(source).replace(".mid", ".wav"))
    args = run.call_args[0][0]
    assert args[0] == "timidity"
    assert args[2:4] == ["-Ow", "-o"]
    assert args[-1].endswith(".wav")


@mock.patch("botplugins.midi.subprocess.run")
def test_text_to_music_writes_midi(run, tmp_path):
    source = tmp_path / "b.mid"
    wav = midi.text_to_music("CDE", source, 40)
    assert wav.suffix == ".wav"
    assert midi.midi_to_text(source.read_bytes(), 0) == "CDE"
    assert run.call_count == 1