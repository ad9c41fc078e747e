import numpy as np
import pytest

from lipstream.model.engine import CallableEngine
from lipstream.system.lip_sync_context import LipSyncContext
from lipstream.utils.errors import ConfigError

N_MELS = 80
WEIGHTS = np.linspace(-1.0, 1.0, N_MELS * 4, dtype=np.float32).reshape(N_MELS, 4)


class RecordingModel:
    """Per-frame linear projection that records the input shapes it saw."""

    def __init__(self):
        self.shapes = []

    def __call__(self, x):
        self.shapes.append(x.shape)
        return x @ WEIGHTS


def _context(context_size=100, model=None):
    model = model or RecordingModel()
    engine = CallableEngine(model, input_shape=(1, None, N_MELS))
    return LipSyncContext(engine=engine, context_size=context_size), model


def _stereo(mono):
    return np.stack([mono, mono], axis=1).astype(np.float32)


def _noise(n, seed=0):
    return np.random.default_rng(seed).standard_normal(n).astype(np.float32) * 0.1


def test_no_model_returns_none():
    ctx = LipSyncContext()
    assert ctx.process(_stereo(_noise(1600)), 16000) is None
    unloaded = LipSyncContext(engine=CallableEngine(None))
    assert unloaded.process(_stereo(_noise(1600)), 16000) is None
    assert unloaded.frame_count == 0


def test_block_smaller_than_hop_waits_for_more_audio():
    ctx, model = _context()
    audio = _noise(160)
    assert ctx.process(_stereo(audio[:100]), 16000) is None
    assert ctx.pending_samples == 100
    assert ctx.frame_count == 0
    prediction = ctx.process(_stereo(audio[100:]), 16000)
    assert prediction is not None
    assert prediction.shape == (4,)
    assert ctx.pending_samples == 0
    assert model.shapes == [(1, 1, N_MELS)]


def test_prediction_is_last_timestep():
    ctx, _ = _context()
    prediction = ctx.process(_stereo(_noise(160 * 5)), 16000)
    assert ctx.frame_count == 5
    np.testing.assert_allclose(prediction, ctx.latest_features() @ WEIGHTS, rtol=1e-5, atol=1e-5)


def test_context_never_exceeds_capacity():
    ctx, model = _context(context_size=5)
    ctx.process(_stereo(_noise(160 * 20)), 16000)
    assert ctx.frame_count == 5
    for seed in range(10):
        ctx.process(_stereo(_noise(333, seed)), 16000)
        assert ctx.frame_count <= 5
    assert max(shape[1] for shape in model.shapes) == 5


def test_shrinking_context_evicts_oldest():
    ctx, _ = _context(context_size=10)
    ctx.process(_stereo(_noise(160 * 8)), 16000)
    newest = ctx.window.frames()[-3:]
    ctx.set_context_size(3)
    assert ctx.context_size == 3
    np.testing.assert_array_equal(ctx.window.frames(), newest)
    with pytest.raises(ConfigError):
        ctx.set_context_size(0)


def test_silence_gives_zero_features():
    ctx, _ = _context()
    for _ in range(5):
        ctx.process(np.zeros((160, 2), dtype=np.float32), 16000)
    np.testing.assert_array_equal(ctx.latest_features(), np.zeros(N_MELS, dtype=np.float32))


def test_opposite_channels_cancel_in_downmix():
    ctx, _ = _context()
    mono = _noise(160 * 4)
    block = np.stack([mono, -mono], axis=1)
    ctx.process(block, 16000)
    np.testing.assert_array_equal(ctx.latest_features(), np.zeros(N_MELS, dtype=np.float32))


def test_reset_then_replay_is_deterministic():
    ctx, _ = _context(context_size=8)
    blocks = [_stereo(_noise(size, seed)) for seed, size in enumerate([300, 50, 512, 160, 999])]
    first = [ctx.process(block, 44100) for block in blocks]
    ctx.reset()
    assert ctx.frame_count == 0
    assert ctx.pending_samples == 0
    assert ctx.resampler.phase == 0.0
    second = [ctx.process(block, 44100) for block in blocks]
    for a, b in zip(first, second):
        if a is None:
            assert b is None
        else:
            np.testing.assert_array_equal(a, b)


def test_block_size_does_not_change_features_at_target_rate():
    audio = _stereo(_noise(160 * 12, seed=7))
    whole, _ = _context()
    whole.process(audio, 16000)
    pieces, _ = _context()
    for start in range(0, len(audio), 37):
        pieces.process(audio[start : start + 37], 16000)
    np.testing.assert_array_equal(whole.window.frames(), pieces.window.frames())


def test_resamples_host_rate_to_hop_cadence():
    ctx, _ = _context()
    for seed in range(10):
        prediction = ctx.process(_stereo(_noise(480, seed)), 48000)
        assert prediction is not None
    assert ctx.frame_count == 10
    assert ctx.pending_samples == 0


def test_mono_input_is_accepted():
    ctx, _ = _context()
    assert ctx.process(_noise(320), 16000) is not None
    assert ctx.frame_count == 2


def test_bad_output_width_returns_none():
    ctx, _ = _context(model=lambda x: np.zeros(7, dtype=np.float32))
    assert ctx.process(_stereo(_noise(320)), 16000) is None
    assert ctx.frame_count == 2


def test_load_model_resets_only_on_success():
    def loader(path):
        if path.endswith("bad.bin"):
            raise ValueError("corrupt model")
        return RecordingModel()

    engine = CallableEngine(RecordingModel(), input_shape=(1, None, N_MELS), loader=loader)
    ctx = LipSyncContext(engine=engine)
    ctx.process(_stereo(_noise(480)), 16000)
    assert ctx.frame_count == 3
    assert not ctx.load_model("bad.bin")
    assert ctx.frame_count == 3
    assert ctx.load_model("good.bin")
    assert ctx.frame_count == 0
    assert not LipSyncContext().load_model("good.bin")


def test_feature_config_follows_processor():
    ctx, _ = _context()
    ctx.process(_stereo(_noise(480)), 16000)
    ctx.configure(n_mels=40, hop_length=200)
    assert ctx.window.width == 40
    assert ctx.frame_count == 0
    ctx.engine.input_shape = (1, None, 40)
    ctx.engine.fn = lambda x: x[..., :3]
    assert ctx.process(_stereo(_noise(199)), 16000) is None
    prediction = ctx.process(_stereo(_noise(1)), 16000)
    assert prediction.shape == (3,)
    assert ctx.window.frames().shape == (1, 40)


def test_direct_processor_changes_are_picked_up():
    ctx, _ = _context()
    ctx.processor.set_sample_rate(22050)
    ctx.process(_stereo(_noise(441)), 44100)
    assert ctx.resampler.target_rate == 22050
    assert ctx.frame_count == 1


def test_model_error_yields_none():
    zeros = np.zeros((40, 4), dtype=np.float32)
    engine = CallableEngine(lambda x: x @ zeros, input_shape=(1, None, N_MELS))
    ctx = LipSyncContext(engine=engine)
    assert ctx.process(np.zeros((160, 2), dtype=np.float32), 16000) is None
    assert ctx.frame_count == 1


def test_context_size_must_be_integer():
    ctx, _ = _context(context_size=4)
    with pytest.raises(ConfigError):
        ctx.set_context_size(3.0)
    assert ctx.context_size == 4
    with pytest.raises(ConfigError):
        LipSyncContext(context_size=2.5)
