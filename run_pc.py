from __future__ import annotations

import argparse
import logging
import time

import numpy as np
import sounddevice as sd

from lipstream.model.engine import engine_for_path
from lipstream.system.lip_sync_context import LipSyncContext
from lipstream.utils.constants import AUDIO, CONTEXT, MODEL
from lipstream.utils.helpers import top_viseme

PRINT_HZ = 10.0


def main() -> None:
    parser = argparse.ArgumentParser(description="Live microphone lip-sync: print the current viseme.")
    parser.add_argument("--model_path", default=MODEL.model_path, help="Path to TFLite or ONNX model")
    parser.add_argument("--device", default=None, help="sounddevice input device")
    parser.add_argument("--blocksize", type=int, default=AUDIO.chunk_size)
    parser.add_argument("--context", type=int, default=CONTEXT.context_size)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    ctx = LipSyncContext(engine=engine_for_path(args.model_path), context_size=args.context)
    if not ctx.load_model(args.model_path):
        print(f"Could not load model: {args.model_path}")
        return

    device_info = sd.query_devices(args.device, "input")
    sample_rate = int(device_info["default_samplerate"])
    channels = min(2, int(device_info["max_input_channels"]))
    last_print = 0.0
    print(f"Listening at {sample_rate} Hz, {channels} channel(s)... Ctrl+C to stop")

    def callback(indata, frames, time_info, status):
        nonlocal last_print
        if status:
            print(status)
        prediction = ctx.process(np.asarray(indata, dtype=np.float32), sample_rate)
        if prediction is None:
            return
        now = time.time()
        if now - last_print >= 1.0 / PRINT_HZ:
            last_print = now
            label, weight = top_viseme(prediction, MODEL.viseme_labels)
            print(f"{label:>4s} {weight:6.3f} {'#' * int(max(weight, 0.0) * 40)}")

    with sd.InputStream(
        device=args.device,
        channels=channels,
        samplerate=sample_rate,
        blocksize=args.blocksize,
        dtype="float32",
        callback=callback,
    ):
        while True:
            sd.sleep(100)


if __name__ == "__main__":
    main()
