#!/usr/bin/env python3
import bisect
import functools
import logging
import os
import queue
import re
import shlex
import subprocess
import sys
import tempfile
import threading
import time
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

ESC = "\033"
HOME_SEQ = f"{ESC}[H"
RESET_COLORS = f"{ESC}[0m"
ENTER_ALTERNATE_SCREEN = f"{ESC}[?1049h"
RESTORE_NORMAL_SCREEN = f"{ESC}[?1049l"

# Text presentation selector tmux leaves in captures; it occupies no cell.
VARIATION_SELECTOR = "\ufe0e"

MOTIONS = ("single", "double")
KEYS_POSITIONS = ("left", "off_left")
OVERLAYS = ("auto", "cursor", "inline")

POLL_INTERVAL = 0.01
EXIT_GRACE = 0.01


@functools.lru_cache(maxsize=1)
def _get_all_tmux_options() -> dict:
    """Batch read all tmux options in one subprocess call."""
    try:
        result = subprocess.run(
            ["tmux", "show-options", "-g"], capture_output=True, text=True, check=False
        )
        options = {}
        for line in result.stdout.strip().split("\n"):
            if " " in line:
                key, value = line.split(" ", 1)
                options[key] = value.strip('"')
        return options
    except Exception:
        return {}


def get_tmux_option(option: str, default: str) -> str:
    """Get tmux option value, falling back to default if not set."""
    return _get_all_tmux_options().get(option, default)


def _unescape(value: str) -> str:
    # "\e" (as typed in tmux.conf, possibly re-escaped by show-options) -> ESC
    return re.sub(r"\\+e", ESC, value)


class MatchMode(Enum):
    LITERAL = "char"
    WORD_START = "word"


@dataclass(frozen=True)
class Config:
    """Configuration for tmux-jump.

    Each field is read from its tmux option first, then from its environment
    variable, then falls back to the default.
    """

    keys: str = field(
        default="jfhgkdlsa;", metadata={"opt": "@jump-keys", "env": "JUMP_KEYS"}
    )
    bg_color: str = field(
        default=f"{ESC}[48;5;240m",
        metadata={"opt": "@jump-bg-color", "env": "JUMP_BACKGROUND_COLOR"},
    )
    fg_color: str = field(
        default=f"{ESC}[1m{ESC}[31m",
        metadata={"opt": "@jump-fg-color", "env": "JUMP_FOREGROUND_COLOR"},
    )
    keys_position: str = field(
        default="left",
        metadata={"opt": "@jump-keys-position", "env": "JUMP_KEYS_POSITION"},
    )
    mode_single: str = field(
        default="word", metadata={"opt": "@jump-mode-single", "env": "JUMP_MODE_SINGLE"}
    )
    mode_double: str = field(
        default="char", metadata={"opt": "@jump-mode-double", "env": "JUMP_MODE_DOUBLE"}
    )
    timeout: float = field(
        default=10.0, metadata={"opt": "@jump-timeout", "env": "JUMP_TIMEOUT"}
    )
    second_char_timeout: float = field(
        default=0.35,
        metadata={
            "opt": "@jump-second-char-timeout",
            "env": "JUMP_SECOND_CHAR_TIMEOUT",
        },
    )
    overlay: str = field(
        default="auto", metadata={"opt": "@jump-overlay", "env": "JUMP_OVERLAY"}
    )

    def __post_init__(self):
        if len(self.keys) < 2 or len(set(self.keys)) != len(self.keys):
            raise ValueError(
                f"keys must be at least two distinct characters, got {self.keys!r}"
            )
        if self.keys_position not in KEYS_POSITIONS:
            raise ValueError(f"Invalid keys position: {self.keys_position!r}")
        for mode in (self.mode_single, self.mode_double):
            if mode not in {m.value for m in MatchMode}:
                raise ValueError(f"Invalid jump mode: {mode!r}")
        if self.overlay not in OVERLAYS:
            raise ValueError(f"Invalid overlay: {self.overlay!r}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_tmux(cls) -> "Config":
        """Load configuration from tmux options and environment variables."""
        kwargs = {}
        for f in fields(cls):
            raw = get_tmux_option(f.metadata["opt"], "") or os.environ.get(
                f.metadata["env"], ""
            )
            if not raw:
                continue
            if f.type is float:
                kwargs[f.name] = float(raw)
            elif f.name.endswith("_color"):
                kwargs[f.name] = _unescape(raw)
            else:
                kwargs[f.name] = raw
        return cls(**kwargs)

    def mode_for(self, motion: str) -> MatchMode:
        return MatchMode(self.mode_double if motion == "double" else self.mode_single)


def setup_logging():
    """Initialize logging configuration based on tmux options"""
    debug = get_tmux_option("@jump-debug", "false").lower() == "true"
    perf = get_tmux_option("@jump-perf", "false").lower() == "true"

    if not (debug or perf):
        logging.getLogger().disabled = True
        return

    log_file = os.path.expanduser("~/tmux-jump.log")
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG,
        format="%(asctime)s - %(levelname)s - %(threadName)s - %(message)s",
    )


def perf_timer(func_name=None):
    """Performance timing decorator that only logs when perf is enabled"""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            perf = get_tmux_option("@jump-perf", "false").lower() == "true"
            if not perf:
                return func(*args, **kwargs)

            name = func_name or func.__name__
            start_time = time.perf_counter()
            result = func(*args, **kwargs)
            end_time = time.perf_counter()

            logging.info(f"{name} took: {end_time - start_time:.3f} seconds")
            return result

        return wrapper

    return decorator


@functools.lru_cache(maxsize=1024)
def get_char_width(char: str) -> int:
    """Get visual width of a single character with caching"""
    return 2 if unicodedata.east_asian_width(char) in "WF" else 1


@functools.lru_cache(maxsize=1024)
def get_string_width(s: str) -> int:
    """Calculate visual width of string, accounting for double-width characters"""
    return sum(map(get_char_width, s))


def get_true_position(line, target_col):
    """Calculate true position accounting for wide characters"""
    visual_pos = 0
    true_pos = 0
    while true_pos < len(line) and visual_pos < target_col:
        char_width = get_char_width(line[true_pos])
        visual_pos += char_width
        true_pos += 1
    return true_pos


def fit_to_width(label: str, width: int) -> str:
    """Cut ``label`` to ``width`` cells, padding with spaces if it falls short"""
    while get_string_width(label) > width:
        label = label[:-1]
    return label + " " * (width - get_string_width(label))


def is_word_char(char: str) -> bool:
    return char.isascii() and (char.isalnum() or char == "_")


# ============================================================================
# Captured screen
# ============================================================================


@dataclass(frozen=True)
class ScreenBuffer:
    """Captured pane text.

    Offsets are 0-based indices into ``text``; line breaks are the only
    source of rows and columns.
    """

    text: str

    @functools.cached_property
    def line_starts(self) -> Tuple[int, ...]:
        starts = [0]
        for idx, char in enumerate(self.text):
            if char == "\n":
                starts.append(idx + 1)
        return tuple(starts)

    @property
    def lines(self) -> List[str]:
        return self.text.split("\n") if self.text else []

    @property
    def height(self) -> int:
        return len(self.lines)

    @property
    def width(self) -> int:
        return max(map(get_string_width, self.lines), default=0)

    def row_col(self, offset: int) -> Tuple[int, int]:
        """Row and character column of ``offset``."""
        if not 0 <= offset <= len(self.text):
            raise IndexError(f"offset {offset} outside buffer of {len(self.text)}")
        row = bisect.bisect_right(self.line_starts, offset) - 1
        return row, offset - self.line_starts[row]

    def visual_column(self, offset: int) -> int:
        """Screen cell column of ``offset``, wide characters taking two cells."""
        row, _ = self.row_col(offset)
        return get_string_width(self.text[self.line_starts[row] : offset])


# ============================================================================
# Matching
# ============================================================================


def is_case_sensitive(query: str) -> bool:
    """The first character decides: upper case (or caseless) means sensitive."""
    return query[0] == query[0].upper()


def resolve_mode(mode, query: str) -> MatchMode:
    """Word mode only makes sense for word characters; fall back to literal."""
    mode = MatchMode(mode)
    if mode is MatchMode.WORD_START and not all(map(is_word_char, query)):
        return MatchMode.LITERAL
    return mode


@perf_timer("Finding matches")
def find_matches(
    buffer: ScreenBuffer, query: str, mode: MatchMode = MatchMode.LITERAL
) -> Tuple[int, ...]:
    """Offsets of every occurrence of ``query`` in ``buffer``, ascending.

    Overlapping occurrences are all reported. In word mode an occurrence only
    counts when it starts a word: its first character is a word character and
    the character before it is not (or it sits at offset 0).
    """
    if not 1 <= len(query) <= 2:
        raise ValueError(f"query must be 1 or 2 characters, got {query!r}")

    text = buffer.text
    fold = (lambda c: c) if is_case_sensitive(query) else str.lower
    needle = [fold(c) for c in query]
    length = len(needle)

    positions = []
    for pos in range(len(text) - length + 1):
        if any(fold(text[pos + i]) != needle[i] for i in range(length)):
            continue
        if mode is MatchMode.WORD_START:
            if not is_word_char(text[pos]):
                continue
            if pos > 0 and is_word_char(text[pos - 1]):
                continue
        positions.append(pos)

    return tuple(positions)


# ============================================================================
# Labels
# ============================================================================


def label_length(count: int, key_count: int) -> int:
    """Smallest length L with key_count ** L >= count (at least 1)."""
    length = 1
    while key_count**length < count:
        length += 1
    return length


def label_for(index: int, length: int, keys: str) -> str:
    """The ``index``-th item of the ``length``-fold product of ``keys``."""
    chars = []
    for _ in range(length):
        index, digit = divmod(index, len(keys))
        chars.append(keys[digit])
    return "".join(reversed(chars))


def allocate_labels(count: int, keys: str) -> Tuple[List[str], int]:
    """Equal-length labels for ``count`` matches, in key product order."""
    if len(keys) < 2:
        raise ValueError("at least two keys are needed to build labels")
    length = label_length(count, len(keys))
    return [label_for(i, length, keys) for i in range(count)], length


def narrow(
    start: int, stop: int, key_index: int, length: int, key_count: int
) -> Optional[Tuple[int, int]]:
    """Range of matches selected by typing key ``key_index``.

    With labels of ``length`` characters each key owns a bucket of
    ``key_count ** (length - 1)`` consecutive matches. Returns None when the
    bucket is empty.
    """
    bucket = key_count ** (length - 1)
    begin = start + key_index * bucket
    if key_index < 0 or begin >= stop:
        return None
    return begin, min(begin + bucket, stop)


# ============================================================================
# Host (tmux) glue
# ============================================================================


def sh(cmd: list) -> str:
    """Execute shell command with optional logging"""
    try:
        result = subprocess.run(
            cmd, shell=False, text=True, capture_output=True, check=True
        ).stdout

        logging.debug(f"Command: {cmd}")
        logging.debug(f"Result: {result}")
        logging.debug("-" * 40)

        return result
    except subprocess.CalledProcessError as e:
        logging.error(f"Error executing {cmd}: {str(e)}")
        raise


def write_tty(path: str, data: str):
    """Append ``data`` to the pane's terminal device."""
    with open(path, "a", encoding="utf-8") as tty:
        tty.write(data)


class PaneInfo:
    __slots__ = (
        "pane_id",
        "tty",
        "copy_mode",
        "cursor_y",
        "cursor_x",
        "alternate_on",
        "scroll_position",
        "height",
        "client",
    )

    def __init__(
        self,
        pane_id,
        tty,
        copy_mode=False,
        cursor_y=0,
        cursor_x=0,
        alternate_on=False,
        scroll_position=0,
        height=0,
        client="",
    ):
        self.pane_id = pane_id
        self.tty = tty
        self.copy_mode = copy_mode
        self.cursor_y = cursor_y
        self.cursor_x = cursor_x
        self.alternate_on = alternate_on
        self.scroll_position = scroll_position
        self.height = height
        self.client = client


PANE_FORMAT = ";".join(
    [
        "#{pane_id}",
        "#{pane_tty}",
        "#{pane_in_mode}",
        "#{cursor_y}",
        "#{cursor_x}",
        "#{alternate_on}",
        "#{scroll_position}",
        "#{pane_height}",
        "#{client_name}",
    ]
)


def get_pane_info(target: Optional[str] = None) -> PaneInfo:
    """Get everything needed about the pane in one tmux call"""
    cmd = ["tmux", "display-message", "-p"]
    target = target or os.environ.get("TMUX_PANE")
    if target:
        cmd.extend(["-t", target])
    cmd.append(PANE_FORMAT)

    (
        pane_id,
        tty_path,
        in_mode,
        cursor_y,
        cursor_x,
        alternate_on,
        scroll_pos,
        height,
        client,
    ) = sh(cmd).strip().split(";")

    return PaneInfo(
        pane_id=pane_id,
        tty=tty_path,
        copy_mode=in_mode == "1",
        cursor_y=int(cursor_y or 0),
        cursor_x=int(cursor_x or 0),
        alternate_on=alternate_on == "1",
        scroll_position=int(scroll_pos or 0),
        height=int(height or 0),
        client=client,
    )


def _capture_cmd(pane: PaneInfo, colors: bool = False) -> list:
    cmd = ["tmux", "capture-pane", "-ep" if colors else "-p", "-t", pane.pane_id]
    if pane.scroll_position > 0:
        end_pos = -(pane.scroll_position - pane.height + 1)
        cmd.extend(["-S", str(-pane.scroll_position), "-E", str(end_pos)])
    return cmd


@perf_timer("Capturing pane")
def capture_screen(pane: PaneInfo) -> ScreenBuffer:
    """Plain text of the visible (or scrolled-to) part of the pane"""
    text = sh(_capture_cmd(pane))[:-1]
    return ScreenBuffer(text.replace(VARIATION_SELECTOR, ""))


def display_message(message: str):
    sh(["tmux", "display-message", message])


def tmux_move_cursor(pane: PaneInfo, line_num: int, true_col: int):
    cmds = [["tmux", "copy-mode", "-t", pane.pane_id]]

    # A fresh copy-mode starts at the bottom; scroll back to the captured view.
    if pane.scroll_position > 0:
        cmds.append(
            [
                "tmux",
                "send-keys",
                "-X",
                "-t",
                pane.pane_id,
                "-N",
                str(pane.scroll_position),
                "scroll-up",
            ]
        )

    cmds.append(["tmux", "send-keys", "-X", "-t", pane.pane_id, "top-line"])
    # Ensure we always start from column 0 of the *screen line*; doing this
    # before moving down avoids "start-of-line" jumping to the beginning of a
    # wrapped *logical* line.
    cmds.append(["tmux", "send-keys", "-X", "-t", pane.pane_id, "start-of-line"])

    if line_num > 0:
        cmds.append(
            [
                "tmux",
                "send-keys",
                "-X",
                "-t",
                pane.pane_id,
                "-N",
                str(line_num),
                "cursor-down",
            ]
        )

    if true_col > 0:
        cmds.append(
            [
                "tmux",
                "send-keys",
                "-X",
                "-t",
                pane.pane_id,
                "-N",
                str(true_col),
                "cursor-right",
            ]
        )

    for cmd in cmds:
        sh(cmd)


# ============================================================================
# Overlay
# ============================================================================


def cursor_to(row: int, col: int) -> str:
    return f"{ESC}[{row + 1};{col + 1}H"


class Overlay(ABC):
    """Draws labels over the pane by writing straight to its tty."""

    def __init__(self, tty_path: str, config: Config):
        self.tty_path = tty_path
        self.config = config

    @abstractmethod
    def render(
        self, buffer: ScreenBuffer, positions: Sequence[int], labels: Sequence[str]
    ) -> str:
        """Build one frame for the given matches and their labels"""
        pass

    def label_column(self, column: int, label: str) -> int:
        if self.config.keys_position == "off_left":
            return max(column - get_string_width(label), 0)
        return column

    def background(self, text: str) -> str:
        if not text:
            return ""
        text = text.replace("\n", "\r\n")
        return f"{self.config.bg_color}{text}{RESET_COLORS}"

    def foreground(self, label: str) -> str:
        return f"{self.config.fg_color}{label}{RESET_COLORS}"

    @perf_timer("Drawing labels")
    def draw(
        self, buffer: ScreenBuffer, positions: Sequence[int], labels: Sequence[str]
    ):
        # Park the cursor at home so nothing is left blinking under a label.
        write_tty(self.tty_path, self.render(buffer, positions, labels) + HOME_SEQ)


class CursorOverlay(Overlay):
    """Paint the whole capture dimmed, then place each label by cursor address."""

    def render(self, buffer, positions, labels):
        frame = [HOME_SEQ, self.background(buffer.text)]
        for offset, label in zip(positions, labels):
            row, _ = buffer.row_col(offset)
            col = self.label_column(buffer.visual_column(offset), label)
            frame.append(cursor_to(row, col) + self.foreground(label))
        return "".join(frame)


class InlineOverlay(Overlay):
    """Rewrite the capture top to bottom with labels spliced into the text.

    Each label replaces the characters under the cells it occupies and is cut
    short at the end of its line. When it covers a wide character the gap is
    padded with spaces, so rows keep their width and no cursor addressing is
    needed.
    """

    def render(self, buffer, positions, labels):
        text = buffer.text
        frame = [HOME_SEQ]
        pos = 0
        for offset, label in zip(positions, labels):
            line_start = text.rfind("\n", 0, offset) + 1
            line_end = text.find("\n", offset)
            if line_end == -1:
                line_end = len(text)
            column = self.label_column(buffer.visual_column(offset), label)
            start = line_start + get_true_position(text[line_start:line_end], column)
            start = max(start, pos)
            end = start + get_true_position(
                text[start:line_end], get_string_width(label)
            )
            cells = get_string_width(text[start:end])
            if not cells:
                continue
            frame.append(self.background(text[pos:start]))
            frame.append(self.foreground(fit_to_width(label, cells)))
            pos = end
        frame.append(self.background(text[pos:]))
        return "".join(frame)


def make_overlay(pane: PaneInfo, config: Config) -> Overlay:
    strategy = config.overlay
    if strategy == "auto":
        strategy = "cursor" if pane.alternate_on else "inline"
    overlay_cls = CursorOverlay if strategy == "cursor" else InlineOverlay
    return overlay_cls(pane.tty, config)


# ============================================================================
# Key prompt
# ============================================================================


class PromptTimeout(Exception):
    """No key was typed before the prompt timed out."""


_TIMED_OUT = object()


class FirstResult:
    """Single-result handoff: the first value put wins, later ones are dropped."""

    def __init__(self):
        self._queue = queue.Queue(maxsize=1)

    def put(self, value) -> bool:
        try:
            self._queue.put_nowait(value)
        except queue.Full:
            return False
        return True

    def get(self):
        return self._queue.get()


def _read_channel(path: str) -> str:
    try:
        with open(path, encoding="utf-8") as channel:
            return channel.read(1)
    except FileNotFoundError:
        return ""


def _poll_channel(path, timeout, stop, result):
    deadline = time.monotonic() + timeout
    while not stop.is_set():
        char = _read_channel(path)
        if char:
            result.put(char)
            return
        if time.monotonic() >= deadline:
            result.put(_TIMED_OUT)
            return
        stop.wait(POLL_INTERVAL)


def _watch_prompt_exit(process, path, stop, result):
    process.wait()
    # Let a character written just before exit reach the file.
    if stop.wait(EXIT_GRACE):
        return
    if not _read_channel(path):
        logging.debug("Prompt exited without a key")
        result.put(None)


def _dismiss_prompt(client: str, process):
    """Close a prompt still open on ``client``; no key is ever sent to a pane."""
    if process.poll() is not None:
        return
    if client:
        try:
            # send-keys -K (keys to the client, not its pane) needs tmux 3.4
            sh(["tmux", "send-keys", "-K", "-c", client, "Escape"])
        except subprocess.CalledProcessError as e:
            logging.warning(f"Could not dismiss prompt on {client}: {e}")
    try:
        process.terminate()
    except OSError as e:
        logging.warning(f"Could not stop prompt process: {e}")


def prompt_template(buffer_name: str, path: str) -> str:
    """tmux commands storing the typed key in ``path`` without a shell.

    ``%%%`` expands to the response with tmux's special characters escaped,
    so quotes, percent signs and backslashes arrive unchanged.
    """
    return (
        f'set-buffer -b {buffer_name} "%%%" ; '
        f"save-buffer -b {buffer_name} {shlex.quote(path)} ; "
        f"delete-buffer -b {buffer_name}"
    )


def prompt_char(client: str, timeout: float = 10.0, label: str = "char:"):
    """Ask tmux for one key on ``client`` and return it.

    Returns None when the prompt is cancelled (escape, prompt closed, Ctrl-C)
    and raises PromptTimeout when nothing is typed within ``timeout``.
    """
    fd, path = tempfile.mkstemp(prefix="tmux-jump-")
    os.close(fd)
    stop = threading.Event()
    result = FirstResult()
    cmd = ["tmux", "command-prompt", "-1"]
    if client:
        cmd.extend(["-t", client])
    cmd.extend(["-p", label, prompt_template(os.path.basename(path), path)])
    try:
        process = subprocess.Popen(cmd)
        workers = (
            (_poll_channel, (path, timeout, stop, result)),
            (_watch_prompt_exit, (process, path, stop, result)),
        )
        for target, args in workers:
            threading.Thread(target=target, args=args, daemon=True).start()

        try:
            char = result.get()
        except KeyboardInterrupt:
            logging.info("Prompt interrupted by user")
            stop.set()
            _dismiss_prompt(client, process)
            return None

        if char is _TIMED_OUT:
            stop.set()
            _dismiss_prompt(client, process)
            raise PromptTimeout(f"no key typed within {timeout} seconds")
        if char is None or char == ESC:
            return None
        return char
    finally:
        stop.set()
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


# ============================================================================
# Screen recovery
# ============================================================================


def _prepare_alternate_screen(pane: PaneInfo) -> Callable[[], None]:
    saved_screen = sh(_capture_cmd(pane, colors=True))[:-1].replace("\n", "\r\n")
    write_tty(pane.tty, HOME_SEQ)

    def restore():
        write_tty(
            pane.tty,
            HOME_SEQ
            + saved_screen
            + cursor_to(pane.cursor_y, pane.cursor_x)
            + RESET_COLORS,
        )

    return restore


def _prepare_normal_screen(pane: PaneInfo) -> Callable[[], None]:
    write_tty(pane.tty, ENTER_ALTERNATE_SCREEN + HOME_SEQ)

    def restore():
        write_tty(pane.tty, RESTORE_NORMAL_SCREEN)

    return restore


def recover_screen_after(pane: PaneInfo, body: Callable):
    """Run ``body`` and put the pane back the way it was, whatever happens.

    A pane already showing a full-screen program is snapshotted and redrawn
    afterwards; any other pane is switched to the terminal's alternate screen
    for the duration. A PromptTimeout from ``body`` yields None. Failures
    while restoring are logged and never raised.
    """
    if pane.alternate_on:
        restore = _prepare_alternate_screen(pane)
    else:
        restore = _prepare_normal_screen(pane)
    try:
        return body()
    except PromptTimeout as e:
        logging.info(f"Giving up: {e}")
        return None
    finally:
        try:
            restore()
        except Exception as e:
            logging.error(f"Could not restore pane {pane.pane_id}: {e}", exc_info=True)


# ============================================================================
# Resolution
# ============================================================================


def resolve_jump(
    buffer: ScreenBuffer,
    positions: Sequence[int],
    keys: str,
    overlay: Overlay,
    read_key: Callable[[], Optional[str]],
) -> Optional[int]:
    """Narrow ``positions`` down to one by reading label keys.

    Returns the index of the chosen position, or None when the user cancels
    or types a key that addresses nothing.
    """
    start, stop = 0, len(positions)
    if stop == 0:
        return None

    while stop - start > 1:
        subset = positions[start:stop]
        labels, length = allocate_labels(len(subset), keys)
        overlay.draw(buffer, subset, labels)

        char = read_key()
        if char is None:
            logging.info("Jump cancelled")
            return None
        key_index = keys.find(char) if len(char) == 1 else -1
        narrowed = narrow(start, stop, key_index, length, len(keys))
        if narrowed is None:
            logging.info(f"Key {char!r} matches no label")
            return None
        start, stop = narrowed
        logging.debug(f"Key {char!r} narrowed to [{start}, {stop})")

    return start


def read_query(motion: str, args: Sequence[str], client: str, config: Config):
    """Query characters from the command line, prompting for missing ones.

    Returns None when a prompt is cancelled.
    """
    needed = 2 if motion == "double" else 1
    query = "".join(args).replace("\n", "").replace("\r", "")[:needed]

    if not query:
        first = prompt_char(client, config.timeout)
        if first is None:
            return None
        query = first

    if len(query) < needed:
        timeout = config.second_char_timeout
        if timeout <= 0:
            timeout = config.timeout
        try:
            second = prompt_char(client, timeout)
        except PromptTimeout:
            logging.info("No second character in time, jumping on one")
            return query
        if second is None:
            return None
        query += second

    return query


@perf_timer("Total execution")
def main(config: Config, pane: PaneInfo, argv: Sequence[str]) -> int:
    motion = argv[0] if argv else "single"
    if motion not in MOTIONS:
        logging.error(f"Invalid motion type: {motion}")
        return 1

    buffer = capture_screen(pane)

    try:
        query = read_query(motion, argv[1:], pane.client, config)
    except PromptTimeout as e:
        logging.info(f"Giving up: {e}")
        return 0
    if not query:
        return 0

    mode = resolve_mode(config.mode_for(motion), query)
    positions = find_matches(buffer, query, mode)
    logging.debug(f"Query {query!r} ({mode.value}): {len(positions)} matches")

    if not positions:
        display_message("no match")
        return 0

    # Copy mode hides whatever is written to the tty.
    if pane.copy_mode:
        sh(["tmux", "send-keys", "-X", "-t", pane.pane_id, "cancel"])

    if len(positions) == 1:
        index = 0
    else:
        overlay = make_overlay(pane, config)
        read_key = functools.partial(prompt_char, pane.client, config.timeout)
        index = recover_screen_after(
            pane,
            lambda: resolve_jump(buffer, positions, config.keys, overlay, read_key),
        )
    if index is None:
        return 0

    row, col = buffer.row_col(positions[index])
    tmux_move_cursor(pane, row, col)
    return 0


def cli():
    setup_logging()
    try:
        config = Config.from_tmux()
        pane = get_pane_info()
        status = main(config, pane, sys.argv[1:])
    except KeyboardInterrupt:
        logging.info("Operation cancelled by user")
        status = 0
    except Exception as e:
        logging.error(f"Error occurred: {str(e)}", exc_info=True)
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    cli()
