"""Stream a wav file through the lip-sync pipeline in host-sized blocks."""
from __future__ import annotations

import argparse
import logging
import time
from collections import Counter

import numpy as np

from lipstream.audio.mic_stream import MicStream
from lipstream.model.engine import engine_for_path
from lipstream.system.lip_sync_context import LipSyncContext
from lipstream.utils.constants import AUDIO, CONTEXT, MODEL
from lipstream.utils.helpers import top_viseme


def main() -> None:
    parser = argparse.ArgumentParser(description="Run lip-sync inference over a wav file.")
    parser.add_argument("wav_path")
    parser.add_argument("--model_path", default=MODEL.model_path)
    parser.add_argument("--blocksize", type=int, default=AUDIO.chunk_size)
    parser.add_argument("--jitter", type=float, default=0.0, help="Relative block size variation")
    parser.add_argument("--context", type=int, default=CONTEXT.context_size)
    parser.add_argument("--verbose", action="store_true", help="Print every prediction")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    ctx = LipSyncContext(engine=engine_for_path(args.model_path), context_size=args.context)
    if not ctx.load_model(args.model_path):
        print(f"Could not load model: {args.model_path}")
        return

    stream, blocks = MicStream.from_wav(args.wav_path, args.blocksize, jitter=args.jitter, seed=0)
    counts: Counter[str] = Counter()
    timings = []
    processed = 0
    for block in blocks:
        start = time.perf_counter()
        prediction = ctx.process(block, stream.sample_rate)
        timings.append(time.perf_counter() - start)
        processed += len(block)
        if prediction is None:
            continue
        label, weight = top_viseme(prediction, MODEL.viseme_labels)
        counts[label] += 1
        if args.verbose:
            print(f"{processed / stream.sample_rate:8.3f}s {label:>4s} {weight:.3f}")

    print(f"Blocks: {len(timings)}, predictions: {sum(counts.values())}")
    if timings:
        print(f"Mean process() time: {np.mean(timings) * 1000:.2f} ms, max {np.max(timings) * 1000:.2f} ms")
    print(f"Viseme histogram: {dict(counts.most_common())}")


if __name__ == "__main__":
    main()
