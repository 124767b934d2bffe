# tunedeck

tunedeck keeps an audio playlist library, tracks playback through it and
shares it with remote clients over a websocket connection.

## What is in it

- `tunedeck.library` – `AudioFileModel`, the ordered song list with per-song
  tags, a selection and an export list, plus `read_tags` and
  `read_cover_image_from_mp3`. Tags and lengths are read from MP3 (ID3v1/ID3v2),
  FLAC, Ogg Vorbis and WAV files.
- `tunedeck.filters` – `TagFilteredModel` (allowed and forbidden tags) and
  `FilteredModel` (case-insensitive search in title and artist), views that
  follow their source.
- `tunedeck.playlist_files` – `read_m3u`, `read_audio_list` and
  `write_audio_list` for the JSON `.apl` format with embedded album covers,
  `find_all_audio_files` for scanning a directory tree, and
  `export_files_to_directory` for copying the songs marked for export.
- `tunedeck.audio` – `AudioController`, which walks the library in loop,
  unique, next-in-line or shuffle mode (`PlayingMode`) and keeps a history for
  `previous` and `next`; `MediaPlayer` holds the source, position, duration,
  volume and playback state.
- `tunedeck.appcontroller` – `AppController`, which loads and saves the current
  playlist file and keeps settings (recent files, last file, last played song)
  as JSON in the user configuration directory.
- `tunedeck.messages` – the JSON message format shared by server and clients.
- `tunedeck.server` – `ServerManager`, the websocket server, and the
  `tunedeck-server` command.
- `tunedeck.client` and `tunedeck.maincontroller` – `ClientController` and
  `MainController`, the client side that sends commands and mirrors the
  server's song list, current song, position and cover picture.
- `tunedeck.commandserver` – `CommandServer`, a plain-text TCP server (port 4000
  by default) that turns `next`/`-n`, `previous`/`-p`, `increase`/`-i`,
  `decrease`/`-d`, `play`, `pause` and `-v <volume>` into signals.
- `tunedeck.events.Signal`, the synchronous callback list every object above
  reports its changes through.

## Installation

```
pip install tunedeck
```

To run the tests:

```
pip install "tunedeck[test]"
pytest
```

## Running the server

```
tunedeck-server [--host HOST] [--port PORT] [--settings FILE]
```

The server listens on all addresses, port 10999, unless told otherwise. On
start the playlist file named in the settings is loaded again; settings are
saved when the server stops.

## Protocol

Every text message is a JSON object:

```json
{"service": "Audio", "action": "play", "Audio": {"index": 3}}
```

Action names are in `tunedeck.constants` (`play`, `stop`, `next`, `previous`,
`loop`, `random`, `volume`, `mute`, `volumeOn`, `streamMusic`, `playOnServer`,
`setTag`, `rmTag`, `select`, `seek`, `state`, `newSong`, `Model`). A message
with an unknown action is handled as `play`. When a client connects it
receives the whole song list (`Model`); afterwards the server sends the
current song (`select`), the position (`seek`) and the playback state
(`state`). Binary messages start with one `tunedeck.constants.DataType` byte
(music file or image) followed by the payload; song files are sent only after
a client has asked for `streamMusic`.

## Using the library

```python
from tunedeck.library import AudioFileModel
from tunedeck.playlist_files import find_all_audio_files, write_audio_list

model = AudioFileModel()
model.insert_songs_at(0, find_all_audio_files("/path/to/music"))
write_audio_list("mine.apl", model)
```

Tags of inserted songs are read in a background thread; pass
`run_in_background` to `AudioFileModel` to run that work elsewhere.

## What it does not do

- It produces no sound. `MediaPlayer` only keeps the playback state; decoding
  and audio output are left to whatever drives it through `set_media_status`,
  `position`, `duration` and `set_metadata`.
- It has no graphical interface and no client command; `MainController` and
  `ClientController` are meant to be used from your own program.
- `CommandServer` only emits signals; it is not connected to the player unless
  you connect it yourself.