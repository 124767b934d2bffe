"""Audio playlist library, playback control, and websocket and TCP remote control."""

__version__ = "1.0.0"