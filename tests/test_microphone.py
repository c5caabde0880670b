import numpy as np
import pytest

try:
    from string_tuner.audio import microphone
except OSError:
    pytest.skip("PortAudio library not available", allow_module_level=True)

from string_tuner.core.errors import DeviceUnavailable, PermissionDenied

INPUT_DEVICE = {"name": "Test Mic", "max_input_channels": 1}


class FakeStream:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.started = False
        self.closed = False
        FakeStream.instances.append(self)

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True


class FailingStream(FakeStream):
    error_code = -9999

    def start(self):
        raise microphone.sd.PortAudioError("Error starting stream", self.error_code)


@pytest.fixture
def fake_device(monkeypatch):
    FakeStream.instances = []
    monkeypatch.setattr(microphone.sd, "query_devices", lambda device=None, kind=None: INPUT_DEVICE)
    monkeypatch.setattr(microphone.sd, "check_input_settings", lambda **kwargs: None)
    monkeypatch.setattr(microphone.sd, "InputStream", FakeStream)


def test_open_and_close(fake_device):
    source = microphone.SoundDeviceSource(sample_rate=48000, window_size=1024)
    source.open()

    stream = FakeStream.instances[-1]
    assert source.is_open()
    assert stream.started
    assert stream.kwargs["samplerate"] == 48000
    assert source.sample_rate == 48000

    source.close()
    source.close()
    assert not source.is_open()
    assert stream.closed


def test_sample_rate_fallback(fake_device, monkeypatch):
    def check(**kwargs):
        if kwargs["samplerate"] != 44100:
            raise microphone.sd.PortAudioError("Invalid sample rate", -9997)

    monkeypatch.setattr(microphone.sd, "check_input_settings", check)
    source = microphone.SoundDeviceSource(sample_rate=96000)
    source.open()

    assert source.sample_rate == 44100
    source.close()


def test_no_input_device(fake_device, monkeypatch):
    def query(device=None, kind=None):
        raise ValueError("No input device matching")

    monkeypatch.setattr(microphone.sd, "query_devices", query)
    with pytest.raises(DeviceUnavailable):
        microphone.SoundDeviceSource().open()


def test_output_only_device(fake_device, monkeypatch):
    monkeypatch.setattr(
        microphone.sd,
        "query_devices",
        lambda device=None, kind=None: {"name": "Speakers", "max_input_channels": 0},
    )
    with pytest.raises(DeviceUnavailable):
        microphone.SoundDeviceSource().open()


def test_no_supported_rate(fake_device, monkeypatch):
    def check(**kwargs):
        raise microphone.sd.PortAudioError("Invalid sample rate", -9997)

    monkeypatch.setattr(microphone.sd, "check_input_settings", check)
    with pytest.raises(DeviceUnavailable):
        microphone.SoundDeviceSource().open()


def test_refused_stream_is_permission_denied(fake_device, monkeypatch):
    monkeypatch.setattr(microphone.sd, "InputStream", FailingStream)
    source = microphone.SoundDeviceSource()

    with pytest.raises(PermissionDenied):
        source.open()
    assert not source.is_open()
    assert FakeStream.instances[-1].closed


def test_unavailable_stream_is_device_unavailable(fake_device, monkeypatch):
    class BusyStream(FailingStream):
        error_code = -9985

    monkeypatch.setattr(microphone.sd, "InputStream", BusyStream)
    with pytest.raises(DeviceUnavailable):
        microphone.SoundDeviceSource().open()


def test_callback_keeps_latest_window():
    source = microphone.SoundDeviceSource(window_size=4)

    source._audio_callback(np.array([[1.0], [2.0], [3.0]], dtype=np.float32), 3, None, None)
    np.testing.assert_array_equal(source.latest_window(), [0.0, 1.0, 2.0, 3.0])

    source._audio_callback(np.array([[4.0, 9.0], [5.0, 9.0]], dtype=np.float32), 2, None, None)
    np.testing.assert_array_equal(source.latest_window(), [2.0, 3.0, 4.0, 5.0])

    source._audio_callback(np.arange(6, dtype=np.float32).reshape(-1, 1), 6, None, None)
    np.testing.assert_array_equal(source.latest_window(), [2.0, 3.0, 4.0, 5.0])


def test_latest_window_is_a_copy():
    source = microphone.SoundDeviceSource(window_size=4)
    window = source.latest_window()
    window[:] = 1.0
    np.testing.assert_array_equal(source.latest_window(), np.zeros(4))
