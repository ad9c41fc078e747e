import numpy as np
import soundfile as sf

from lipstream.audio.frame_processor import FeatureConfig, FrameProcessor
from lipstream.audio.logmelspec import clip_features, stream_log_mel
from lipstream.audio.mic_stream import MicStream, to_stereo
from lipstream.utils.constants import AUDIO
from lipstream.utils.helpers import ensure_mono, top_viseme


def test_stream_log_mel_matches_streaming_processor():
    signal = np.random.randn(AUDIO.hop_length * 10 + 37).astype(np.float32)
    spec = stream_log_mel(signal)
    assert spec.shape == (10, AUDIO.n_mels)
    proc = FrameProcessor()
    for i, row in enumerate(spec):
        hop = signal[i * AUDIO.hop_length : (i + 1) * AUDIO.hop_length]
        np.testing.assert_array_equal(row, proc.process_frame(hop))


def test_clip_features_resamples_file(tmp_path):
    path = tmp_path / "tone.wav"
    t = np.arange(32000) / 32000
    sf.write(str(path), np.sin(2 * np.pi * 440.0 * t).astype(np.float32), 32000)
    spec = clip_features(path, FeatureConfig())
    assert spec.shape == (100, AUDIO.n_mels)
    assert np.all(np.isfinite(spec))


def test_mic_stream_irregular_blocks_cover_signal():
    data = np.arange(5000, dtype=np.float32)
    stream = MicStream(sample_rate=16000, chunk_size=512, jitter=0.5, seed=1)
    blocks = list(stream.from_array(data))
    sizes = {len(block) for block in blocks}
    assert len(sizes) > 1
    assert all(block.shape[1] == 2 for block in blocks)
    np.testing.assert_array_equal(np.concatenate(blocks)[:, 0], data)


def test_mic_stream_fixed_blocks():
    stream = MicStream(sample_rate=16000, chunk_size=100)
    sizes = [len(block) for block in stream.from_array(np.zeros(250, dtype=np.float32))]
    assert sizes == [100, 100, 50]


def test_channel_helpers():
    mono = np.array([1.0, -1.0], dtype=np.float32)
    np.testing.assert_array_equal(to_stereo(mono), [[1.0, 1.0], [-1.0, -1.0]])
    np.testing.assert_array_equal(ensure_mono(np.array([[1.0, 0.0], [0.5, 0.5]])), [0.5, 0.5])


def test_top_viseme_labels():
    assert top_viseme(np.array([0.1, 0.7, 0.2]), ("sil", "PP", "FF")) == ("PP", 0.7)
    assert top_viseme(np.array([0.1, 0.7]), ("sil", "PP", "FF"))[0] == "1"


def test_to_stereo_averages_extra_channels():
    block = np.array([[1.0, 2.0, 3.0], [0.0, 0.0, 3.0]], dtype=np.float32)
    np.testing.assert_array_equal(to_stereo(block), [[2.0, 2.0], [1.0, 1.0]])
    stereo = np.array([[1.0, -1.0]], dtype=np.float32)
    np.testing.assert_array_equal(to_stereo(stereo), stereo)
