import base64
import struct

import pytest

from playback.engine import SpeechPlayer
from processing.models import SummaryResult
from recorder.audio_capture import AudioRecorder
from recorder.device_guard import AudioDeviceGuard
from session.meeting import MeetingSession

SAMPLE_SUMMARY = {
    "title": "Release Planning",
    "shortSummary": "The team agreed to ship on Friday.",
    "detailedSummary": ["Release date set for Friday", "Report is pending"],
    "actionItems": [
        {"task": "Write the release report", "assignee": "John",
         "priority": "High", "dueDate": "2026-10-23"},
        {"task": "Update the changelog", "assignee": "Unassigned",
         "priority": "Low", "dueDate": ""},
        {"task": "Notify customers", "assignee": "Ana",
         "priority": "High", "dueDate": "2026-10-24"},
        {"task": "Book the retro", "assignee": "Speaker 1",
         "priority": "Medium", "dueDate": ""},
    ],
    "discussionBreakdown": [
        {"speaker": "Speaker 1", "points": ["We ship Friday."]},
        {"speaker": "John", "points": ["Will write the report."]},
    ],
}


def pcm_payload(*samples: int) -> str:
    return base64.b64encode(struct.pack(f"<{len(samples)}h", *samples)).decode("ascii")


def run_now(target, *args):
    target(*args)


class Deferred:
    """spawn() que guarda el trabajo para ejecutarlo a mano."""

    def __init__(self):
        self.pending = []

    def __call__(self, target, *args):
        self.pending.append((target, args))

    def run_all(self):
        while self.pending:
            target, args = self.pending.pop(0)
            target(*args)


class FakeGateway:
    def __init__(self, summary=None, transcript="Speaker 1: We ship Friday.",
                 speech=None):
        self.summary = summary if summary is not None else SummaryResult.model_validate(SAMPLE_SUMMARY)
        self.transcript = transcript
        self.speech = speech if speech is not None else pcm_payload(0, 16384, -32768)
        self.calls = []

    def _answer(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    def summarize(self, transcript, title_hint=""):
        self.calls.append(("summarize", transcript, title_hint))
        return self._answer(self.summary)

    def transcribe(self, audio, mime_type):
        self.calls.append(("transcribe", audio, mime_type))
        return self._answer(self.transcript)

    def synthesize_speech(self, text):
        self.calls.append(("speech", text))
        return self._answer(self.speech)

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


class FakeInputStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.callback = kwargs["callback"]
        self.started = False
        self.stopped = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def close(self):
        self.closed = True

    def feed(self, data: bytes):
        self.callback(data, len(data) // 2, None, None)


class FakeStreamFactory:
    def __init__(self, error=None):
        self.error = error
        self.streams = []

    def __call__(self, **kwargs):
        if self.error is not None:
            raise self.error
        stream = FakeInputStream(**kwargs)
        self.streams.append(stream)
        return stream

    @property
    def last(self):
        return self.streams[-1]


class FakeOutput:
    def __init__(self, samples, sample_rate, channels, on_finished):
        self.samples = samples
        self.sample_rate = sample_rate
        self.channels = channels
        self.on_finished = on_finished
        self.stopped = False
        self.closed = False

    def stop(self):
        self.stopped = True
        self.closed = True

    def close(self):
        self.closed = True

    def finish(self):
        self.on_finished()


class FakeOutputFactory:
    def __init__(self):
        self.outputs = []

    def __call__(self, samples, sample_rate, channels, on_finished):
        output = FakeOutput(samples, sample_rate, channels, on_finished)
        self.outputs.append(output)
        return output

    @property
    def last(self):
        return self.outputs[-1]


@pytest.fixture
def summary_result():
    return SummaryResult.model_validate(SAMPLE_SUMMARY)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def guard():
    return AudioDeviceGuard()


@pytest.fixture
def stream_factory():
    return FakeStreamFactory()


@pytest.fixture
def output_factory():
    return FakeOutputFactory()


@pytest.fixture
def session(gateway):
    return MeetingSession(gateway, spawn=run_now)


@pytest.fixture
def recorder(gateway, session, guard, stream_factory):
    return AudioRecorder(
        gateway,
        on_transcript=session.complete_transcription,
        device_guard=guard,
        sample_rate=16000,
        channels=1,
        audio_format="wav",
        stream_factory=stream_factory,
        spawn=run_now,
    )


@pytest.fixture
def player(gateway, guard, output_factory):
    return SpeechPlayer(
        gateway,
        device_guard=guard,
        sample_rate=24000,
        channels=1,
        output_factory=output_factory,
        spawn=run_now,
    )
