import pytest

from viewer import MessageViewer


class FakeIO:
    """IO handler that records output and answers input() from a list."""

    def __init__(self):
        self.output = []
        self.inputs = []
        self.prompts = []

    def write(self, text):
        self.output.append(text)

    def input(self, prompt=""):
        self.prompts.append(prompt)
        if not self.inputs:
            raise EOFError
        return self.inputs.pop(0)

    @property
    def text(self):
        return "".join(self.output)


class RecordingViewer(MessageViewer):
    """Viewer sink that keeps every protocol message it is sent."""

    def __init__(self):
        self.messages = []
        self.connected = False
        self.connects = 0
        self.closed = False

    def ensure_connected(self, snapshot):
        if not self.connected:
            self.connected = True
            self.connects += 1
            self.send_state(snapshot())

    def send(self, message):
        self.messages.append(message)

    def close(self):
        self.connected = False
        self.closed = True


@pytest.fixture
def fake_io():
    return FakeIO()


@pytest.fixture
def viewer():
    return RecordingViewer()
