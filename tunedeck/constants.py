"""Protocol keys, action names and enumerations shared by player, server and client."""

from __future__ import annotations

from enum import IntEnum


class Action(IntEnum):
    """Remote actions understood by the server and the client."""

    PLAY = 0
    STOP = 1
    NEXT = 2
    PREVIOUS = 3
    SELECT = 4
    LOOP = 5
    RANDOM = 6
    AUDIO_MODEL = 7
    VOLUME_ON = 8
    MUTE = 9
    PLAY_ON_SERVER = 10
    STREAM_MUSIC = 11
    NEW_SONG = 12
    SEEK = 13
    SET_VOLUME = 14
    STATE = 15
    SET_TAG = 16
    REMOVE_TAG = 17


class DataType(IntEnum):
    """First byte of a binary message, telling what follows."""

    MUSIC_FILE = 0
    IMAGE_FILE = 1


# JSON envelope keys
JSON_SERVICE = "service"
JSON_ACTION = "action"
JSON_PARAMETER = "Audio"
JSON_SONGS = "songs"
JSON_PATTERN = "pattern"

# Song information keys
INFO_ALBUM = "album"
INFO_ARTIST = "artist"
INFO_PATH = "path"
INFO_TAGS = "tags"
INFO_TITLE = "title"
INFO_TIME = "time"
INFO_INDEX = "index"
INFO_VALUE = "value"
INFO_VOLUME = "volume"

# Service name
AUDIO = "Audio"

# Action names
MODEL = "Model"
NEXT = "next"
PREVIOUS = "previous"
PLAY = "play"
STOP = "stop"
PAUSE = "pause"
RANDOM = "random"
LOOP = "loop"
SET_TAG = "setTag"
REMOVE_TAG = "rmTag"
UNIQUE = "unique"
FORWARD = "forward"
SELECT = "select"
FORMAT = "format"
NEW_SONG = "newSong"
VOLUME_ON = "volumeOn"
MUTE = "mute"
STREAM_MUSIC = "streamMusic"
PLAY_ON_SERVER = "playOnServer"
SEEK = "seek"
VOLUME = "volume"
STATE = "state"
TAG = "tag"
FORBIDDEN = "forbidden"

# Fields
SAMPLE_RATE = "sampleRate"
CHANNEL_COUNT = "channelCount"
SAMPLE_FORMAT = "sampleFormat"
URI = "uri"

# Wire action name -> Action
ACTION_BY_NAME: dict[str, Action] = {
    PLAY: Action.PLAY,
    STOP: Action.STOP,
    PREVIOUS: Action.PREVIOUS,
    SELECT: Action.SELECT,
    LOOP: Action.LOOP,
    RANDOM: Action.RANDOM,
    VOLUME: Action.SET_VOLUME,
    MODEL: Action.AUDIO_MODEL,
    NEW_SONG: Action.NEW_SONG,
    VOLUME_ON: Action.VOLUME_ON,
    SEEK: Action.SEEK,
    MUTE: Action.MUTE,
    STATE: Action.STATE,
    STREAM_MUSIC: Action.STREAM_MUSIC,
    PLAY_ON_SERVER: Action.PLAY_ON_SERVER,
    SET_TAG: Action.SET_TAG,
    REMOVE_TAG: Action.REMOVE_TAG,
    NEXT: Action.NEXT,
}