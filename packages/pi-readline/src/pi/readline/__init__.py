"""pi-readline: asynchronous line editing for terminal applications."""

# Edit state
from pi.readline.buffer import EditBuffer

# Errors
from pi.readline.errors import (
    CancellationError,
    HistoryLoadError,
    HistoryWriteError,
    InputClosedError,
    ReadlineError,
    TerminalControlError,
)

# History
from pi.readline.history import HistoryStore

# Input framing and key parsing
from pi.readline.input_buffer import InputBuffer
from pi.readline.keys import Key, KeyId, is_printable, parse_key

# Synchronization
from pi.readline.locks import RWLock

# Session
from pi.readline.readline import PromptState, Readline

# Rendering
from pi.readline.render import Renderer

# Settings
from pi.readline.settings import ReadlineSettings, load_settings

# Input sources
from pi.readline.source import (
    BytesSource,
    InputSource,
    KeyReader,
    StdinSource,
    StreamSource,
)

# Terminal interface and raw mode
from pi.readline.terminal import (
    ProcessTerminal,
    Terminal,
    disable_raw_mode,
    enable_raw_mode,
    is_raw_mode_enabled,
    raw_mode,
)

# Utilities
from pi.readline.utils import strip_ansi, visible_width

__all__ = [
    # Edit state
    "EditBuffer",
    # Errors
    "CancellationError",
    "HistoryLoadError",
    "HistoryWriteError",
    "InputClosedError",
    "ReadlineError",
    "TerminalControlError",
    # History
    "HistoryStore",
    # Input
    "InputBuffer",
    "Key",
    "KeyId",
    "is_printable",
    "parse_key",
    # Synchronization
    "RWLock",
    # Session
    "PromptState",
    "Readline",
    # Rendering
    "Renderer",
    # Settings
    "ReadlineSettings",
    "load_settings",
    # Sources
    "BytesSource",
    "InputSource",
    "KeyReader",
    "StdinSource",
    "StreamSource",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    "disable_raw_mode",
    "enable_raw_mode",
    "is_raw_mode_enabled",
    "raw_mode",
    # Utilities
    "strip_ansi",
    "visible_width",
]
