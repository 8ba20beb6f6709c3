"""Viewer process for the debugger: reads the pipe protocol and draws the program."""
import bisect
import logging
import sys

from config import load_settings

logger = logging.getLogger(__name__)

CLEAR_SCREEN = "\033[2J\033[H"
CURRENT_LINE = "\033[43m\033[30m"
BREAKPOINT = "\033[41m"
RESET = "\033[0m"


class ViewerModel:
    def __init__(self):
        self.labels = []
        self.lines = []
        self.breakpoints = set()
        self.current_line = 0

    def clear(self):
        self.labels = []
        self.lines = []
        self.breakpoints = set()
        self.current_line = 0

    def apply(self, message):
        """
        Applies one protocol message. Returns True when the message asks for a
        redraw; raises ValueError for anything malformed.
        """
        message = message.rstrip("\r\n")
        if message == 'print':
            return True
        if message == 'clear':
            self.clear()
            return False

        kind, sep, rest = message.partition(':')
        if not sep or kind not in ('a', 'u', 'r', 'b', 'c'):
            raise ValueError(f"Got bad command: {message}")

        if kind in ('a', 'u'):
            number, sep, text = rest.partition(':')
            if not sep:
                raise ValueError(f"Missing text in command: {message}")
            number = int(number)
            if kind == 'a':
                self._add(number, text)
            else:
                self.lines[self._index(number)] = text
        elif kind == 'r':
            idx = self._index(int(rest))
            del self.labels[idx]
            del self.lines[idx]
        elif kind == 'b':
            label = int(rest)
            if label in self.breakpoints:
                self.breakpoints.remove(label)
            else:
                self.breakpoints.add(label)
        else:
            self.current_line = int(rest)
        return False

    def _index(self, idx):
        if not 0 <= idx < len(self.lines):
            raise ValueError(f"Line index out of range: {idx}")
        return idx

    def _add(self, label, text):
        idx = bisect.bisect_left(self.labels, label)
        if idx < len(self.labels) and self.labels[idx] == label:
            self.lines[idx] = text
        else:
            self.labels.insert(idx, label)
            self.lines.insert(idx, text)

    def render(self):
        out = []
        for idx, (label, text) in enumerate(zip(self.labels, self.lines)):
            if idx == self.current_line:
                out.append(f"{CURRENT_LINE}{text}{RESET}")
            elif label in self.breakpoints:
                out.append(f"{BREAKPOINT}{text}{RESET}")
            else:
                out.append(text)
        return out


def listen(path, model=None, output=None):
    """Reads messages from the pipe until the writer goes away."""
    model = model if model is not None else ViewerModel()
    output = output if output is not None else sys.stdout
    with open(path, 'r') as pipe:
        for message in pipe:
            try:
                redraw = model.apply(message)
            except ValueError as err:
                logger.warning("%s, skipping", err)
                continue
            if redraw:
                output.write(CLEAR_SCREEN)
                for text in model.render():
                    output.write(text + "\n")
                output.flush()
    return model


def main():
    settings = load_settings()
    logging.basicConfig(level=settings['LOG_LEVEL'])
    path = sys.argv[1] if len(sys.argv) > 1 else settings['PIPE']
    model = ViewerModel()
    try:
        # The debugger reconnects to the same pipe after closing it
        while True:
            listen(path, model)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
