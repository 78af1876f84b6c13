#!/usr/bin/env python3
"""Terminal Mines: a 10x10 minefield redrawn in place with ANSI escapes.

Controls:
  W/A/S/D : move cursor (up/left/down/right)
  Space   : reveal cell
  F       : flag/unflag
  R       : restart with a fresh minefield
  Q       : quit

Hitting a mine opens the whole board; press R to play again. The controls
are printed once above the board when the game starts.
"""

import os
import random
import sys
import time

if os.name == "nt":
    import msvcrt
else:
    import termios

# ── Board configuration ───────────────────────────────────────────────
ROWS = 10
COLS = 10
MINES = 25

# Consecutive failed reads before the terminal is given up on
MAX_READ_FAILURES = 100

# ── Glyphs ────────────────────────────────────────────────────────────
GLYPH_FLAG = "F"
GLYPH_HIDDEN = "#"
GLYPH_MINE = "*"
GLYPH_EMPTY = " "
GLYPH_UNKNOWN = "?"

CURSOR_LEFT = "["
CURSOR_RIGHT = "]"

# ── ANSI escapes ──────────────────────────────────────────────────────
ESC = "\033"

CONTROLS = "WASD: move  Space: reveal  F: flag  R: restart  Q: quit"

# ── Input tokens ──────────────────────────────────────────────────────
KEYMAP = {
    "w": "up",
    "a": "left",
    "s": "down",
    "d": "right",
    " ": "reveal",
    "f": "flag",
    "q": "quit",
    "r": "restart",
}

# Token -> (row delta, col delta)
MOVES = {
    "up": (-1, 0),
    "left": (0, -1),
    "down": (1, 0),
    "right": (0, 1),
}

# Cell kinds
EMPTY = "empty"
MINE = "mine"

# Controller states
RUNNING = "running"
QUIT = "quit"


# ── Game Logic ────────────────────────────────────────────────────────

class Cell:
    """One board position."""

    def __init__(self, kind=EMPTY):
        self.kind = kind
        self.is_open = False
        self.is_flagged = False

    def __repr__(self):
        return f"Cell({self.kind!r}, open={self.is_open}, flag={self.is_flagged})"


class Board:
    """Cell grid plus cursor and counters.

    Cells are stored row-major in a flat list; callers address them by
    (row, col) only.
    """

    def __init__(self, rows=ROWS, cols=COLS, mine_count=MINES, rng=None):
        if rows <= 0 or cols <= 0:
            raise ValueError(f"board must be at least 1x1, got {cols}x{rows}")
        if not 0 <= mine_count <= rows * cols:
            raise ValueError(
                f"mine count {mine_count} does not fit a {cols}x{rows} board")
        self.rows = rows
        self.cols = cols
        self.mine_count = mine_count
        self.rng = rng if rng is not None else random.Random()
        self.reset()

    def _index(self, row, col):
        assert 0 <= row < self.rows and 0 <= col < self.cols, \
            f"cell ({row}, {col}) outside {self.cols}x{self.rows} board"
        return row * self.cols + col

    @property
    def size(self):
        return self.rows * self.cols

    def cell_at(self, row, col):
        return self.cells[self._index(row, col)]

    def set_kind(self, row, col, kind):
        self.cells[self._index(row, col)].kind = kind

    def positions(self):
        """Yield every (row, col) in row-major order."""
        for row in range(self.rows):
            for col in range(self.cols):
                yield row, col

    def cursor_cell(self):
        return self.cell_at(self.cursor_row, self.cursor_col)

    def clear(self):
        """Replace every cell with a closed, unflagged empty one."""
        self.cells = [Cell() for _ in range(self.size)]
        self.cursor_row = 0
        self.cursor_col = 0
        self.open_count = 0

    def reset(self):
        """Start a new game: clear the grid, then scatter mine_count mines."""
        self.clear()
        place_mines(self)

    def mine_positions(self):
        return [(r, c) for r, c in self.positions()
                if self.cell_at(r, c).kind == MINE]

    def move_cursor(self, d_row, d_col):
        """Step the cursor; a step off the edge is ignored."""
        row = self.cursor_row + d_row
        col = self.cursor_col + d_col
        if 0 <= row < self.rows and 0 <= col < self.cols:
            self.cursor_row = row
            self.cursor_col = col
        assert 0 <= self.cursor_row < self.rows
        assert 0 <= self.cursor_col < self.cols

    def open_cell(self, row, col):
        """Open one cell, keeping open_count in step. Returns True if it changed."""
        cell = self.cell_at(row, col)
        if cell.is_open:
            return False
        cell.is_open = True
        self.open_count += 1
        return True

    def reveal_all(self):
        """Open every cell that is still closed."""
        for row, col in self.positions():
            self.open_cell(row, col)

    def reveal(self):
        """Open the cell under the cursor.

        Opening a mine opens the rest of the board with it. Revealing a
        cell that is already open changes nothing.
        """
        cell = self.cursor_cell()
        if self.open_cell(self.cursor_row, self.cursor_col) and cell.kind == MINE:
            self.reveal_all()

    def toggle_flag(self):
        """Flip the flag under the cursor, open or not."""
        cell = self.cursor_cell()
        cell.is_flagged = not cell.is_flagged


def place_mines(board):
    """Scatter board.mine_count mines, retrying cells that already hold one.

    Expects a cleared board.
    """
    placed = 0
    while placed < board.mine_count:
        row = board.rng.randrange(board.rows)
        col = board.rng.randrange(board.cols)
        if board.cell_at(row, col).kind != MINE:
            board.set_kind(row, col, MINE)
            placed += 1


def count_neighbors(board, row, col):
    """Count mines in the up-to-8 cells around (row, col)."""
    count = 0
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if dr == 0 and dc == 0:
                continue
            nr, nc = row + dr, col + dc
            if 0 <= nr < board.rows and 0 <= nc < board.cols:
                if board.cell_at(nr, nc).kind == MINE:
                    count += 1
    return count


# ── Drawing ───────────────────────────────────────────────────────────

def cell_glyph(board, row, col):
    """Return the single character shown for a cell."""
    cell = board.cell_at(row, col)
    if not cell.is_open:
        return GLYPH_FLAG if cell.is_flagged else GLYPH_HIDDEN
    if cell.kind == MINE:
        return GLYPH_MINE
    if cell.kind == EMPTY:
        n = count_neighbors(board, row, col)
        return GLYPH_EMPTY if n == 0 else str(n)
    return GLYPH_UNKNOWN


def build_hline(cols):
    return "-" * (cols * 3 + 2)


def frame_height(board):
    """Lines in one frame: header, two rules and one line per row."""
    return board.rows + 3


def render(board):
    """Serialize the board into one text frame, newline-terminated lines."""
    lines = [
        f"{board.cols}x{board.rows} | mines: {board.mine_count}"
        f" | open: {board.open_count}/{board.size}",
        build_hline(board.cols),
    ]
    for r in range(board.rows):
        line = "|"
        for c in range(board.cols):
            here = r == board.cursor_row and c == board.cursor_col
            line += CURSOR_LEFT if here else " "
            line += cell_glyph(board, r, c)
            line += CURSOR_RIGHT if here else " "
        lines.append(line + "|")
    lines.append(build_hline(board.cols))
    return "".join(line + "\n" for line in lines)


def cursor_up(n):
    """ANSI sequence moving the terminal cursor up n lines."""
    return f"{ESC}[{n}A"


# ── Controller ────────────────────────────────────────────────────────

def parse_key(ch):
    """Map a raw key to a token name, or None for keys with no binding."""
    return KEYMAP.get(ch)


class Game:
    """Reads one token at a time, applies it and redraws the board."""

    def __init__(self, board, out=None):
        self.board = board
        self.out = out if out is not None else sys.stdout
        self.state = RUNNING

    def handle_token(self, token):
        """Apply one token. Returns True when the board should be redrawn."""
        if token in MOVES:
            self.board.move_cursor(*MOVES[token])
        elif token == "reveal":
            self.board.reveal()
        elif token == "flag":
            self.board.toggle_flag()
        elif token == "restart":
            self.board.reset()
        elif token == "quit":
            self.state = QUIT
            return False
        return True

    def draw(self, overwrite=True):
        # Previous frame has the same height; overwrite it in place
        if overwrite:
            self.out.write(cursor_up(frame_height(self.board)))
        self.out.write(render(self.board))
        self.out.flush()

    def run(self, read_key):
        """Main loop. read_key blocks and returns a raw key, or None on a failed read."""
        self.draw(overwrite=False)
        while self.state == RUNNING:
            ch = read_key()
            if ch is None:
                continue
            if self.handle_token(parse_key(ch)):
                self.draw()


# ── Terminal ──────────────────────────────────────────────────────────

class TerminalError(RuntimeError):
    """The input device cannot be used for keystroke input."""


def enable_ansi_windows():
    """Turn on VT escape processing for the Windows console, if possible."""
    import ctypes

    kernel32 = ctypes.windll.kernel32
    handle = kernel32.GetStdHandle(-11)  # STD_OUTPUT_HANDLE
    mode = ctypes.c_ulong()
    if not kernel32.GetConsoleMode(handle, ctypes.byref(mode)):
        return
    kernel32.SetConsoleMode(handle, mode.value | 0x0004)


class RawTerminal:
    """Delivers single keystrokes without echo; restores the terminal on exit."""

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdin
        self._saved = None
        self._failures = 0

    def __enter__(self):
        fd = self.stream.fileno()
        if not os.isatty(fd):
            raise TerminalError("stdin is not a terminal!")
        if os.name == "nt":
            enable_ansi_windows()
            return self
        self._saved = termios.tcgetattr(fd)
        attrs = termios.tcgetattr(fd)
        attrs[3] &= ~(termios.ICANON | termios.ECHO)
        attrs[6][termios.VMIN] = 1
        attrs[6][termios.VTIME] = 0
        termios.tcsetattr(fd, termios.TCSAFLUSH, attrs)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._saved is not None:
            termios.tcsetattr(self.stream.fileno(), termios.TCSAFLUSH,
                              self._saved)
            self._saved = None
        return False

    def read_key(self):
        """Block for one key. Returns None when nothing could be read.

        A hung-up terminal fails every read; after MAX_READ_FAILURES failures
        in a row this raises TerminalError instead.
        """
        if os.name == "nt":
            ch = msvcrt.getwch()
            # Extended keys arrive as a prefix followed by a scan code
            if ch in ("\x00", "\xe0"):
                ch = msvcrt.getwch()
            return ch
        try:
            data = os.read(self.stream.fileno(), 1)
        except OSError:
            data = b""
        if not data:
            self._failures += 1
            if self._failures >= MAX_READ_FAILURES:
                raise TerminalError("no input from terminal")
            return None
        self._failures = 0
        return data.decode("latin-1")


# ── Main ──────────────────────────────────────────────────────────────

def main(stdin=None, stdout=None):
    """Play until the player quits. Returns the process exit code."""
    stdout = stdout if stdout is not None else sys.stdout
    rng = random.Random(int(time.time()))
    game = Game(Board(ROWS, COLS, MINES, rng), stdout)
    try:
        with RawTerminal(stdin) as term:
            print(CONTROLS, file=stdout)
            game.run(term.read_key)
    except TerminalError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


def run():
    """Console-script entry point."""
    try:
        code = main()
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    run()
