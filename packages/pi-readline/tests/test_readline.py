"""Tests for pi.readline.readline: the Readline session controller."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from pi.readline import terminal as terminal_module
from pi.readline.errors import CancellationError, HistoryWriteError, InputClosedError
from pi.readline.history import HistoryStore
from pi.readline.readline import PromptState, Readline
from pi.readline.settings import ReadlineSettings
from pi.readline.source import BytesSource

from virtual_terminal import VirtualTerminal

# Raw escape codes for key sequences
KEY_UP = "\x1b[A"
KEY_DOWN = "\x1b[B"
KEY_LEFT = "\x1b[D"
KEY_RIGHT = "\x1b[C"
KEY_HOME = "\x1b[H"
KEY_END = "\x1b[F"
KEY_ENTER = "\r"
KEY_BACKSPACE = "\x7f"
KEY_DELETE = "\x1b[3~"
KEY_CTRL_C = "\x03"


def make_readline(
    *chunks: str,
    prompt: str = "> ",
    history_file: Path | None = None,
    history: HistoryStore | None = None,
) -> tuple[Readline, VirtualTerminal]:
    term = VirtualTerminal()
    rl = Readline(
        BytesSource(*chunks),
        prompt,
        history_file,
        history=history,
        terminal=term,
    )
    return rl, term


def history_of(*lines: str) -> HistoryStore:
    store = HistoryStore()
    for line in lines:
        store.append(line)
    return store


class KeyFeeder:
    """Input source the test feeds one key press at a time."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[bytes] = asyncio.Queue()

    def press(self, data: str) -> None:
        self._queue.put_nowait(data.encode("utf-8"))

    def end(self) -> None:
        self._queue.put_nowait(b"")

    async def read(self, n: int = 4096) -> bytes:
        return await self._queue.get()

    def close(self) -> None:
        pass


async def settle() -> None:
    await asyncio.sleep(0.01)


class TestSubmit:
    @pytest.mark.asyncio
    async def test_returns_typed_line(self) -> None:
        rl, term = make_readline("hello" + KEY_ENTER)
        assert await rl.run() == "hello"
        assert term.finished_lines == ["> hello"]

    @pytest.mark.asyncio
    async def test_multiple_runs_share_one_source(self) -> None:
        rl, _ = make_readline("first\rsecond\r")
        assert await rl.run() == "first"
        assert await rl.run() == "second"

    @pytest.mark.asyncio
    async def test_line_feed_also_submits(self) -> None:
        rl, _ = make_readline("abc\n")
        assert await rl.run() == "abc"

    @pytest.mark.asyncio
    async def test_crlf_submits_once(self) -> None:
        rl, _ = make_readline("ls\r\npwd\r\n")
        assert await rl.run() == "ls"
        assert await rl.run() == "pwd"
        with pytest.raises(InputClosedError):
            await rl.run()

    @pytest.mark.asyncio
    async def test_submitted_line_is_added_to_history(self) -> None:
        rl, _ = make_readline("ls\r")
        await rl.run()
        assert rl.history.entries == ["ls"]

    @pytest.mark.asyncio
    async def test_empty_line_is_not_added_to_history(self) -> None:
        rl, _ = make_readline("\r")
        assert await rl.run() == ""
        assert rl.history.entries == []

    @pytest.mark.asyncio
    async def test_repeated_line_is_recorded_once(self) -> None:
        rl, _ = make_readline("ls\rls\r")
        await rl.run()
        await rl.run()
        assert rl.history.entries == ["ls"]

    @pytest.mark.asyncio
    async def test_initial_render_shows_prompt(self) -> None:
        rl, term = make_readline("\r", prompt="prompt> ")
        await rl.run()
        assert term.ops[0] == ("clear_line", None)
        assert term.finished_lines == ["prompt>"]

    @pytest.mark.asyncio
    async def test_buffer_is_fresh_for_each_run(self) -> None:
        rl, _ = make_readline("abc\rd\r")
        await rl.run()
        assert await rl.run() == "d"


class TestEditing:
    @pytest.mark.asyncio
    async def test_left_twice_then_delete(self) -> None:
        rl, _ = make_readline("abc" + KEY_LEFT * 2 + KEY_DELETE + KEY_ENTER)
        assert await rl.run() == "ac"

    @pytest.mark.asyncio
    async def test_delete_at_start_leaves_bc(self) -> None:
        rl, term = make_readline("abc" + KEY_LEFT * 3 + KEY_DELETE + KEY_ENTER)
        assert await rl.run() == "bc"

    @pytest.mark.asyncio
    async def test_cursor_position_after_delete(self) -> None:
        feeder = KeyFeeder()
        term = VirtualTerminal()
        rl = Readline(feeder, "> ", terminal=term)
        task = asyncio.create_task(rl.run())
        for key in ["a", "b", "c", KEY_LEFT, KEY_LEFT, KEY_LEFT, KEY_DELETE]:
            feeder.press(key)
        await settle()
        assert rl.buffer.text == "bc"
        assert rl.buffer.cursor == 0
        assert term.line == "> bc"
        assert term.cursor_column == 3
        feeder.press(KEY_ENTER)
        assert await task == "bc"

    @pytest.mark.asyncio
    async def test_fix_typo_with_arrows(self) -> None:
        keys = "ls -la Deskrop" + KEY_LEFT * 4 + KEY_RIGHT + KEY_DELETE + "t" + KEY_ENTER
        rl, _ = make_readline(keys)
        assert await rl.run() == "ls -la Desktop"

    @pytest.mark.asyncio
    async def test_backspace_rewrites_tail(self) -> None:
        keys = "ls -la Deskrop" + KEY_BACKSPACE * 3 + "top" + KEY_BACKSPACE * 7 + "Downloads" + KEY_ENTER
        rl, _ = make_readline(keys)
        assert await rl.run() == "ls -la Downloads"

    @pytest.mark.asyncio
    async def test_backspace_at_start_is_noop(self) -> None:
        rl, _ = make_readline(KEY_BACKSPACE * 3 + "a" + KEY_ENTER)
        assert await rl.run() == "a"

    @pytest.mark.asyncio
    async def test_arrows_at_bounds_are_noops(self) -> None:
        rl, _ = make_readline(KEY_LEFT + "ab" + KEY_RIGHT * 3 + "c" + KEY_ENTER)
        assert await rl.run() == "abc"

    @pytest.mark.asyncio
    async def test_home_and_end(self) -> None:
        rl, _ = make_readline("bc" + KEY_HOME + "a" + KEY_END + "d" + KEY_ENTER)
        assert await rl.run() == "abcd"

    @pytest.mark.asyncio
    async def test_unsupported_keys_are_ignored(self) -> None:
        rl, term = make_readline("\t\x01\x1b[5~\x1b[1;5Da" + KEY_ENTER)
        assert await rl.run() == "a"

    @pytest.mark.asyncio
    async def test_unsupported_key_does_not_render(self) -> None:
        feeder = KeyFeeder()
        term = VirtualTerminal()
        rl = Readline(feeder, "> ", terminal=term)
        task = asyncio.create_task(rl.run())
        await settle()
        term.clear_ops()
        feeder.press("\t")
        await settle()
        assert term.ops == []
        feeder.press(KEY_ENTER)
        await task

    @pytest.mark.asyncio
    async def test_escape_sequence_split_across_reads(self) -> None:
        rl, _ = make_readline("ab", "\x1b", "[", "D", "X\r")
        assert await rl.run() == "aXb"

    @pytest.mark.asyncio
    async def test_multibyte_input(self) -> None:
        data = "héllo".encode("utf-8")
        term = VirtualTerminal()
        rl = Readline(BytesSource(data[:2], data[2:], b"\r"), "> ", terminal=term)
        assert await rl.run() == "héllo"

    @pytest.mark.asyncio
    async def test_typing_at_end_writes_incrementally(self) -> None:
        rl, term = make_readline("abc\r")
        await rl.run()
        writes = [arg for op, arg in term.ops if op == "write"]
        assert writes == ["> ", "a", "b", "c"]


class TestHistoryNavigation:
    @pytest.mark.asyncio
    async def test_up_up_down_down(self) -> None:
        feeder = KeyFeeder()
        term = VirtualTerminal()
        rl = Readline(feeder, "> ", history=history_of("ls", "cd /tmp"), terminal=term)
        task = asyncio.create_task(rl.run())

        feeder.press("git st")
        await settle()

        feeder.press(KEY_UP)
        await settle()
        assert rl.buffer.text == "cd /tmp"
        assert term.line == "> cd /tmp"

        feeder.press(KEY_UP)
        await settle()
        assert rl.buffer.text == "ls"

        feeder.press(KEY_DOWN)
        await settle()
        assert rl.buffer.text == "cd /tmp"

        feeder.press(KEY_DOWN)
        await settle()
        assert rl.buffer.text == "git st"
        assert rl.buffer.cursor == len("git st")
        assert term.line == "> git st"

        feeder.press(KEY_ENTER)
        assert await task == "git st"

    @pytest.mark.asyncio
    async def test_up_beyond_oldest_stays(self) -> None:
        rl, _ = make_readline(KEY_UP * 5 + KEY_ENTER, history=history_of("ls", "pwd"))
        assert await rl.run() == "ls"

    @pytest.mark.asyncio
    async def test_up_on_empty_history_is_noop(self) -> None:
        rl, _ = make_readline("x" + KEY_UP + KEY_ENTER)
        assert await rl.run() == "x"

    @pytest.mark.asyncio
    async def test_down_without_browsing_is_noop(self) -> None:
        rl, _ = make_readline("x" + KEY_DOWN + KEY_ENTER, history=history_of("ls"))
        assert await rl.run() == "x"

    @pytest.mark.asyncio
    async def test_recalled_entry_can_be_edited(self) -> None:
        rl, _ = make_readline(KEY_UP + " -la" + KEY_ENTER, history=history_of("ls"))
        assert await rl.run() == "ls -la"
        assert rl.history.entries == ["ls", "ls -la"]

    @pytest.mark.asyncio
    async def test_resubmitting_newest_entry(self) -> None:
        keys = "test command -r one\rnot the previous command\r" + KEY_UP * 2 + KEY_DOWN + KEY_ENTER
        rl, _ = make_readline(keys)
        assert await rl.run() == "test command -r one"
        assert await rl.run() == "not the previous command"
        assert await rl.run() == "not the previous command"
        assert rl.history.entries == ["test command -r one", "not the previous command"]

    @pytest.mark.asyncio
    async def test_browsing_ends_after_submit(self) -> None:
        rl, _ = make_readline(KEY_UP + KEY_ENTER + KEY_DOWN + "new" + KEY_ENTER, history=history_of("a", "b"))
        assert await rl.run() == "b"
        assert await rl.run() == "new"

    @pytest.mark.asyncio
    async def test_sessions_share_a_history_store(self) -> None:
        store = HistoryStore()
        rl1, _ = make_readline("shared\r", history=store)
        rl2, _ = make_readline(KEY_UP + KEY_ENTER, history=store)
        await rl1.run()
        assert await rl2.run() == "shared"


class TestCancellation:
    @pytest.mark.asyncio
    async def test_ctrl_c_raises_cancellation(self) -> None:
        rl, term = make_readline("partial" + KEY_CTRL_C)
        with pytest.raises(CancellationError):
            await rl.run()
        assert term.finished_lines == ["> partial"]

    @pytest.mark.asyncio
    async def test_ctrl_c_leaves_state_unchanged(self) -> None:
        rl, _ = make_readline("x" + KEY_UP + KEY_UP + KEY_CTRL_C, history=history_of("ls", "pwd"))
        with pytest.raises(CancellationError):
            await rl.run()
        assert rl.history.entries == ["ls", "pwd"]
        assert rl.history.browsing is False
        assert await rl.get_prompt() == "> "
        assert rl.buffer.text == ""

    @pytest.mark.asyncio
    async def test_session_usable_after_cancel(self) -> None:
        rl, _ = make_readline("discard me" + KEY_CTRL_C + "keep\r")
        with pytest.raises(CancellationError):
            await rl.run()
        assert await rl.run() == "keep"
        assert rl.history.entries == ["keep"]

    @pytest.mark.asyncio
    async def test_task_cancellation_discards_buffer(self) -> None:
        feeder = KeyFeeder()
        term = VirtualTerminal()
        rl = Readline(feeder, "> ", history=history_of("ls"), terminal=term)
        task = asyncio.create_task(rl.run())
        feeder.press("abc" + KEY_UP)
        await settle()
        assert rl.history.browsing is True

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert rl.buffer.text == ""
        assert rl.history.browsing is False


class TestInputErrors:
    @pytest.mark.asyncio
    async def test_end_of_input_raises_input_closed(self) -> None:
        rl, _ = make_readline("unfinished")
        with pytest.raises(InputClosedError):
            await rl.run()
        assert rl.buffer.text == ""
        assert rl.history.entries == []

    @pytest.mark.asyncio
    async def test_input_closed_is_an_oserror(self) -> None:
        rl, _ = make_readline()
        with pytest.raises(OSError):
            await rl.run()

    @pytest.mark.asyncio
    async def test_close_ends_input(self) -> None:
        rl, _ = make_readline("never read\r")
        rl.close()
        with pytest.raises(InputClosedError):
            await rl.run()

    @pytest.mark.asyncio
    async def test_history_write_failure_surfaces(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = HistoryStore()
        store._path = blocker / "history"
        rl, _ = make_readline("ls\r", history=store)
        with pytest.raises(HistoryWriteError) as excinfo:
            await rl.run()
        assert excinfo.value.line == "ls"
        assert store.entries == ["ls"]


class TestPrompt:
    @pytest.mark.asyncio
    async def test_get_and_set_prompt(self) -> None:
        rl, _ = make_readline(prompt="a> ")
        assert await rl.get_prompt() == "a> "
        await rl.set_prompt("b> ")
        assert await rl.get_prompt() == "b> "

    @pytest.mark.asyncio
    async def test_prompt_change_during_run_shows_on_next_render(self) -> None:
        feeder = KeyFeeder()
        term = VirtualTerminal()
        rl = Readline(feeder, "> ", terminal=term)
        task = asyncio.create_task(rl.run())
        await settle()
        assert term.line == ">"

        await rl.set_prompt("new> ")
        feeder.press("a")
        await settle()
        assert term.line == "new> a"
        assert term.cursor_column == 7

        feeder.press(KEY_ENTER)
        assert await task == "a"

    @pytest.mark.asyncio
    async def test_prompt_state_concurrent_access(self) -> None:
        state = PromptState("0")

        async def writer(i: int) -> None:
            await state.set(str(i))

        await asyncio.gather(*(writer(i) for i in range(20)), *(state.get() for _ in range(20)))
        assert await state.get() in {str(i) for i in range(20)}


class TestConcurrentRuns:
    @pytest.mark.asyncio
    async def test_runs_are_serialized(self) -> None:
        rl, _ = make_readline("first\rsecond\r")
        results = await asyncio.gather(rl.run(), rl.run())
        assert results == ["first", "second"]


class TestPersistence:
    @pytest.mark.asyncio
    async def test_history_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / ".readline_history"
        lines = ["one", "two", "three"]
        rl, _ = make_readline(*(line + KEY_ENTER for line in lines), history_file=path)
        for line in lines:
            assert await rl.run() == line

        fresh, _ = make_readline(history_file=path)
        assert fresh.history.entries == lines

    @pytest.mark.asyncio
    async def test_recall_from_previous_process(self, tmp_path: Path) -> None:
        path = tmp_path / ".readline_history"
        keys = "test command -r test\rthis is the second command -m 123\r" + KEY_UP + KEY_ENTER + KEY_CTRL_C
        rl, _ = make_readline(keys, history_file=path)
        assert await rl.run() == "test command -r test"
        assert await rl.run() == "this is the second command -m 123"
        assert await rl.run() == "this is the second command -m 123"
        with pytest.raises(CancellationError):
            await rl.run()

        again, _ = make_readline(KEY_UP + KEY_ENTER, history_file=path)
        assert await again.run() == "this is the second command -m 123"


class TestConstruction:
    def test_from_settings(self, tmp_path: Path) -> None:
        path = tmp_path / "hist"
        path.write_text("ls\n", encoding="utf-8")
        settings = ReadlineSettings(prompt="$ ", history_file=str(path), escape_timeout=0.2)
        rl = Readline.from_settings(settings, reader=BytesSource(), terminal=VirtualTerminal())
        assert rl.history.entries == ["ls"]
        assert asyncio.run(rl.get_prompt()) == "$ "

    def test_raw_mode_helpers_delegate(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[str] = []
        monkeypatch.setattr(terminal_module, "enable_raw_mode", lambda: calls.append("on"))
        monkeypatch.setattr(terminal_module, "disable_raw_mode", lambda: calls.append("off"))
        Readline.enable_raw_mode()
        Readline.disable_raw_mode()
        assert calls == ["on", "off"]
