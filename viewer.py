"""
Debugger viewer channel.

The debugger mirrors the program, its breakpoints and the current line to an
external viewer process through a one way text protocol, one message per line:

    a:<label>:<text>   add a line
    u:<index>:<text>   replace the text of the line at index
    r:<index>          remove the line at index
    b:<label>          toggle the breakpoint marker of a label
    c:<index>          move the current line marker
    print              redraw
    clear              forget everything
"""
import errno
import logging
import os
import shlex
import stat
import subprocess
import threading
import time
from collections import namedtuple

logger = logging.getLogger(__name__)

# lines is a list of (label, text) pairs in program order
ViewerState = namedtuple('ViewerState', ['lines', 'breakpoints', 'current_line'])


class ViewerSink:
    """Receives debugger state changes. This one ignores them all."""

    def ensure_connected(self, snapshot):
        pass

    def add_line(self, label, text):
        pass

    def update_line(self, index, text):
        pass

    def remove_line(self, index):
        pass

    def toggle_breakpoint(self, label):
        pass

    def set_current_line(self, index):
        pass

    def force_redraw(self):
        pass

    def clear(self):
        pass

    def close(self):
        pass


class MessageViewer(ViewerSink):
    """Turns sink calls into protocol messages; subclasses deliver them with send()."""

    def send(self, message):
        raise NotImplementedError

    def add_line(self, label, text):
        self.send(f"a:{label}:{text}")

    def update_line(self, index, text):
        self.send(f"u:{index}:{text}")

    def remove_line(self, index):
        self.send(f"r:{index}")

    def toggle_breakpoint(self, label):
        self.send(f"b:{label}")

    def set_current_line(self, index):
        self.send(f"c:{index}")

    def force_redraw(self):
        self.send("print")

    def clear(self):
        self.send("clear")

    def send_state(self, state):
        self.clear()
        for label, text in state.lines:
            self.add_line(label, text)
        for label in sorted(state.breakpoints):
            self.toggle_breakpoint(label)
        self.set_current_line(state.current_line)
        self.force_redraw()


class PipeViewer(MessageViewer):
    """
    Writes protocol messages into a named FIFO read by the viewer process.

    The connection is made lazily by ensure_connected(): the FIFO is created if
    needed, the viewer is (re)launched when it isn't running, and once the
    reader is attached the whole state is sent again. Messages sent while
    disconnected are dropped; the next connection re-sends everything anyway.
    """

    def __init__(self, path, command, timeout=5.0):
        self.path = path
        self.command = command
        self.timeout = timeout
        self._stream = None
        self._process = None
        self._lock = threading.Lock()

    @property
    def connected(self):
        return self._stream is not None

    def ensure_connected(self, snapshot):
        with self._lock:
            if self._stream is not None:
                return
            try:
                self._connect()
            except OSError as err:
                logger.warning("Viewer is not available: %s", err)
                return
        self.send_state(snapshot())

    def _make_fifo(self):
        if os.path.exists(self.path):
            if not stat.S_ISFIFO(os.stat(self.path).st_mode):
                raise OSError(errno.EEXIST, "Not a named pipe", self.path)
            return
        os.mkfifo(self.path)

    def _launch(self):
        if self._process is not None and self._process.poll() is None:
            return
        args = shlex.split(self.command) + [self.path]
        logger.info("Launching viewer: %s", args)
        self._process = subprocess.Popen(args)

    def _connect(self):
        self._make_fifo()
        self._launch()

        # A non blocking open fails with ENXIO until the reader has the FIFO open
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fd = os.open(self.path, os.O_WRONLY | os.O_NONBLOCK)
                break
            except OSError as err:
                if err.errno != errno.ENXIO or time.monotonic() > deadline:
                    raise
                code = self._process.poll()
                if code is not None:
                    raise OSError(errno.ENXIO, f"Viewer exited with code {code}", self.path) from err
                time.sleep(0.05)
        os.set_blocking(fd, True)
        self._stream = os.fdopen(fd, 'w', buffering=1)
        logger.info("Connected to viewer on %s", self.path)

    def _drop(self):
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.close()
            except BrokenPipeError as err:
                logger.debug("Pipe was already broken: %s", err)

    def send(self, message):
        with self._lock:
            if self._stream is None:
                return
            try:
                self._stream.write(message + "\n")
            except BrokenPipeError:
                logger.warning("Viewer disconnected")
                self._drop()

    def close(self):
        with self._lock:
            self._drop()
            if self._process is not None and self._process.poll() is None:
                self._process.terminate()
            self._process = None
