"""InputBuffer frames decoded input into complete key sequences.

Input can arrive in partial chunks, so an escape sequence such as
``ESC [ 3 ~`` may be split across reads. Without buffering, the pieces would
be misinterpreted as an Escape press followed by printable characters.
"""

from __future__ import annotations

ESC = "\x1b"


def _is_complete_sequence(data: str) -> str:
    """Check if a string is a complete escape sequence or needs more data.

    Returns 'complete', 'incomplete', or 'not-escape'.
    """
    if not data.startswith(ESC):
        return "not-escape"

    if len(data) == 1:
        return "incomplete"

    after_esc = data[1:]

    # CSI sequences: ESC [
    if after_esc.startswith("["):
        return _is_complete_csi_sequence(data)

    # OSC sequences: ESC ]
    if after_esc.startswith("]"):
        return _is_complete_string_sequence(data, allow_bel=True)

    # DCS / APC sequences: ESC P, ESC _
    if after_esc.startswith("P") or after_esc.startswith("_"):
        return _is_complete_string_sequence(data, allow_bel=False)

    # SS3 sequences: ESC O
    if after_esc.startswith("O"):
        return "complete" if len(after_esc) >= 2 else "incomplete"

    # Meta key sequences: ESC followed by a single character
    return "complete"


def _is_complete_csi_sequence(data: str) -> str:
    if len(data) < 3:
        return "incomplete"

    # Final byte of a CSI sequence is in 0x40-0x7E
    if 0x40 <= ord(data[-1]) <= 0x7E:
        return "complete"

    return "incomplete"


def _is_complete_string_sequence(data: str, *, allow_bel: bool) -> str:
    if data.endswith(f"{ESC}\\") and len(data) > 3:
        return "complete"
    if allow_bel and data.endswith("\x07"):
        return "complete"
    return "incomplete"


def _extract_complete_sequences(buffer: str) -> tuple[list[str], str]:
    """Split accumulated buffer into complete sequences.

    Returns (sequences, remainder).
    """
    sequences: list[str] = []
    pos = 0

    while pos < len(buffer):
        remaining = buffer[pos:]

        if not remaining.startswith(ESC):
            sequences.append(remaining[0])
            pos += 1
            continue

        seq_end = 1
        while seq_end <= len(remaining):
            status = _is_complete_sequence(remaining[:seq_end])
            if status == "incomplete":
                seq_end += 1
                continue
            sequences.append(remaining[:seq_end])
            pos += seq_end
            break
        else:
            return sequences, remaining

    return sequences, ""


class InputBuffer:
    """Accumulates decoded input and hands out complete sequences.

    A trailing partial escape sequence is held back until more data arrives
    or the caller decides it has waited long enough and calls :meth:`flush`.
    """

    def __init__(self) -> None:
        self._buffer: str = ""

    def feed(self, data: str) -> list[str]:
        """Add *data* and return every sequence that is now complete."""
        self._buffer += data
        sequences, self._buffer = _extract_complete_sequences(self._buffer)
        return sequences

    def flush(self) -> list[str]:
        """Give up waiting and return the held-back partial sequence, if any."""
        if not self._buffer:
            return []

        # A lone ESC is the Escape key; anything longer is an unknown
        # sequence that the key parser will reject as a whole.
        sequences = [self._buffer]
        self._buffer = ""
        return sequences

    def clear(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer
