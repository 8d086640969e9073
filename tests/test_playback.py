import numpy as np
import pytest

from conftest import Deferred, FakeGateway, FakeOutputFactory, pcm_payload, run_now
from errors import BusyError, SpeechSynthesisError
from playback import engine
from playback.engine import SpeechPlayer, decode_pcm
from recorder.device_guard import AudioDeviceGuard


def test_decode_pcm_normalizes_samples():
    samples = decode_pcm(pcm_payload(0, 16384, -32768, 32767))

    assert samples.dtype == np.float32
    assert samples.shape == (4, 1)
    assert samples[:, 0].tolist() == pytest.approx([0.0, 0.5, -1.0, 32767 / 32768])
    assert samples.min() >= -1.0 and samples.max() <= 1.0


def test_decode_pcm_stereo_frames():
    samples = decode_pcm(pcm_payload(1, 2, 3, 4), channels=2)
    assert samples.shape == (2, 2)


@pytest.mark.parametrize("payload", ["AAE", "!!!!", "AAEC"])
def test_decode_pcm_rejects_bad_payloads(payload):
    # "AAEC" decodes to 3 bytes, an incomplete sample
    with pytest.raises(ValueError):
        decode_pcm(payload)


def test_toggle_plays_synthesized_speech(player, gateway, output_factory, guard):
    assert player.toggle("Summary: hi") == "loading"

    assert player.state == "playing"
    assert gateway.calls == [("speech", "Summary: hi")]
    output = output_factory.last
    assert output.sample_rate == 24000
    assert output.channels == 1
    assert output.samples.shape == (3, 1)
    assert guard.owner == "playback"


def test_toggle_while_playing_stops_immediately(player, output_factory, guard):
    player.toggle("text")

    assert player.toggle("text") == "idle"

    assert output_factory.last.stopped
    assert player.state == "idle"
    assert guard.owner is None


def test_double_toggle_while_loading_synthesizes_once(gateway, output_factory):
    spawn = Deferred()
    player = SpeechPlayer(gateway, output_factory=output_factory, spawn=spawn)

    assert player.toggle("text") == "loading"
    assert player.toggle("text") == "loading"
    spawn.run_all()

    assert gateway.count("speech") == 1
    assert len(output_factory.outputs) == 1
    assert player.state == "playing"


def test_restart_after_stop_requests_fresh_synthesis(player, gateway, output_factory):
    player.toggle("text")
    first = output_factory.last
    player.toggle("text")

    player.toggle("text")

    assert gateway.count("speech") == 2
    assert output_factory.last is not first
    assert player.state == "playing"

    # a late end-of-stream from the first handle must not touch the new one
    first.finish()
    assert player.state == "playing"


def test_natural_end_returns_to_idle(player, output_factory, guard):
    player.toggle("text")

    output_factory.last.finish()

    assert player.state == "idle"
    assert output_factory.last.closed
    assert guard.owner is None


def test_synthesis_failure_returns_to_idle(output_factory, guard):
    gateway = FakeGateway(speech=SpeechSynthesisError("Failed to generate speech. Please try again."))
    player = SpeechPlayer(gateway, device_guard=guard, output_factory=output_factory, spawn=run_now)

    player.toggle("text")

    assert player.state == "idle"
    assert player.error == "Failed to generate speech. Please try again."
    assert output_factory.outputs == []
    assert guard.owner is None


def test_decode_failure_returns_to_idle(output_factory):
    player = SpeechPlayer(FakeGateway(speech="AAEC"), output_factory=output_factory, spawn=run_now)

    player.toggle("text")

    assert player.state == "idle"
    assert player.error == engine.DECODE_FAILED


def test_output_device_failure_returns_to_idle(gateway):
    def broken(*args):
        raise OSError("no output device")

    player = SpeechPlayer(gateway, output_factory=broken, spawn=run_now)

    player.toggle("text")

    assert player.state == "idle"
    assert player.error == engine.OUTPUT_FAILED


def test_close_stops_playback(player, output_factory):
    player.toggle("text")

    player.close()
    player.close()

    assert output_factory.last.stopped
    assert player.state == "idle"
    assert player.toggle("text") == "idle"


def test_close_while_loading_discards_audio(gateway):
    spawn = Deferred()
    outputs = FakeOutputFactory()
    player = SpeechPlayer(gateway, output_factory=outputs, spawn=spawn)

    player.toggle("text")
    player.close()
    spawn.run_all()

    assert outputs.outputs == []
    assert player.state == "idle"


def test_playback_blocked_while_recording(gateway, output_factory):
    guard = AudioDeviceGuard()
    guard.acquire("recording")
    player = SpeechPlayer(gateway, device_guard=guard, output_factory=output_factory, spawn=run_now)

    with pytest.raises(BusyError):
        player.toggle("text")

    assert gateway.calls == []
    assert player.state == "idle"


def test_unexpected_synthesis_error_returns_to_idle(output_factory, guard):
    player = SpeechPlayer(FakeGateway(speech=RuntimeError("boom")), device_guard=guard,
                          output_factory=output_factory, spawn=run_now)

    player.toggle("text")

    assert player.state == "idle"
    assert player.error == "Failed to generate speech. Please try again."
    assert guard.owner is None


def test_stop_discards_loading_speech(gateway):
    spawn = Deferred()
    outputs = FakeOutputFactory()
    player = SpeechPlayer(gateway, output_factory=outputs, spawn=spawn)
    player.toggle("text")

    assert player.stop() == "idle"
    spawn.run_all()

    assert outputs.outputs == []
    assert player.state == "idle"
    assert player.toggle("text") == "loading"
