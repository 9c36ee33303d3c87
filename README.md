# botplugins

Building blocks for a group chat bot. The package holds the rules and the data handling that sit behind the bot's commands: reminder timers, join checks, admin helpers, MIDI note tools, a song guessing game and a daily reminder text.

## Modules

- `botplugins.timer`: the `Timer` record for group reminders. It packs the enabled flag, month, day, weekday, hour and minute into one integer (`packed`). `Timer.info()` gives a normalised description, `Timer.timer_id()` a stable 32-bit id from its md5, and `Timer.segments()` the message segments sent when it fires (an @all, the alert text and an optional image). `filled_timer` builds a timer from the matched parts of a Chinese date phrase. `filled_cron_timer` builds one from a cron expression. `chinese_num_to_int` and `chinese_char_to_int` read Chinese numerals.
- `botplugins.schedule`: `next_wake_time(timer, now)` works out when a dated reminder should next be checked. `is_due(timer, now)` tells whether it fires at that moment. `first_weekday_of_month` finds the first given weekday of a month (Sunday = 0).
- `botplugins.clock`: `CronSchedule` parses five-field cron expressions and the `@daily`-style descriptors, with `matches` and `next_after`. `Clock(db_path, sender)` stores timers in a SQLite `timer` table and runs each one on a background thread. Each time a timer fires, `sender(group_id, segments)` is called. It offers `register`, `cancel`, `list_timers`, `get`, `add_to_db`, `add_to_map` and `close`, and can be used as a context manager.
- `botplugins.hyaku`: `load_poems` reads the hundred-poem CSV table into `Poem` records. It checks the count and the numbering. `str(poem)` gives the labelled text.
- `botplugins.gist`:
  - `welcome_to_cq` fills the `{at}`, `{nickname}`, `{avatar}`, `{uid}`, `{gid}` and `{groupname}` placeholders of a welcome or farewell template.
  - `parse_gist_answer`, `gist_url` and `check_gist_timestamp` handle join requests answered as `username/gisthash`.
  - `GistVerifier(db_path, fetch)` runs the whole check. `fetch` is your own function that downloads a URL. It raises `GistRejected` with the reason, and records accepted GitHub users so that the same account cannot join twice.
- `botplugins.admin`:
  - `ban_minutes` and `self_ban_minutes` work out ban lengths, capped at 43199 minutes.
  - `unescape_forward` undoes escaped brackets in CQ codes.
  - `toggle_flag` sets or clears a group flag (`VERIFY_FLAG`, `GIST_FLAG`).
  - `format_essence` describes an essence message entry.
  - `check_card_length` and `check_title_length` enforce the byte limits.
- `botplugins.midi`:
  - `build_midi` and `write_midi` turn a note string such as `CCGGAAGR FFEEDDCR` into a one-track MIDI file.
  - `midi_to_text` turns a track back into a note string.
  - `parse_note`, `octave` and `note_name` handle single notes.
  - `validate_timbre` checks an instrument number in 0–127.
  - `render_wav` and `text_to_music` render MIDI to WAV with `timidity`.
- `botplugins.guessgame`:
  - `MusicInfo.parse` reads track names of the form `title - artist - extra.mp3`.
  - `game_match` judges one guess and returns a `MatchResult`.
  - `pick_local_music` and `draw_local_music` pick a random track from a playlist folder.
  - `cut_music` cuts three ten-second WAV clips with `ffmpeg`.
- `botplugins.holiday`: `Holiday` and `parse_holiday` read values stored as `days_year_month_day`. `Holiday.describe`, `weekend_message` and `daily_reminder` build the daily reminder text.

## Installation

```
pip install .
```

`render_wav` and `text_to_music` need `timidity` on the PATH. `cut_music` needs `ffmpeg` on the PATH.

## Example

```python
from botplugins.timer import filled_timer
from botplugins.midi import write_midi, midi_to_text

timer = filled_timer(["", "12", "每周", "8", "30", "", "Good morning"], 0, 12345, False)
print(timer.info())

path = write_midi("tune.mid", "CCGGAAGR FFEEDDCR", 40)
print(midi_to_text(path.read_bytes(), 0))
```

## What it does not do

The package has no chat connection, no command parsing and no bot entry point. Your own bot framework has to match messages, call these functions and send the replies. It does not download anything itself: `GistVerifier` uses the `fetch` function you pass in, and holiday values must be fetched and handed to `parse_holiday` by you. It also has no picture or image features.

## Running the tests

```
pip install .[test]
pytest
```