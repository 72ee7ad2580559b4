"""Throughput benchmarks written as shields.io endpoint badges."""
import json
import logging
import os
import time

from hashgen import generate_hash
from tokens import generate_token

logger = logging.getLogger(__name__)

TARGETS = [
    ('md5', lambda: generate_hash('The quick brown fox jumps over the lazy dog', 'md5'), 2000),
    ('sha256', lambda: generate_hash('The quick brown fox jumps over the lazy dog', 'sha-256'), 20000),
    ('token', lambda: generate_token('hex', 32, seed='bench'), 20000),
]


def run(fn, iterations):
    """Call fn iterations times after a short warm-up; return operations per second."""
    for _ in range(min(100, iterations)):
        fn()
    start = time.perf_counter()
    for _ in range(iterations):
        fn()
    elapsed = time.perf_counter() - start
    return round(iterations / elapsed) if elapsed > 0 else iterations


def badge(ops):
    if ops is None:
        return {'schemaVersion': 1, 'label': 'speed', 'message': 'error', 'color': 'red'}
    if ops > 1_000_000:
        color = 'brightgreen'
    elif ops > 300_000:
        color = 'green'
    elif ops > 100_000:
        color = 'blue'
    else:
        color = 'lightgrey'
    return {'schemaVersion': 1, 'label': 'speed', 'message': f'{ops:,} ops/s', 'color': color}


def write_badges(out_dir='bench', targets=TARGETS):
    """Benchmark each target and write <name>.json into out_dir; return how many succeeded."""
    os.makedirs(out_dir, exist_ok=True)
    wrote = 0
    for name, fn, iterations in targets:
        try:
            ops = run(fn, iterations)
        except Exception:
            logger.exception("benchmark %s failed", name)
            ops = None
        else:
            wrote += 1
            logger.info("%s: %d ops/s", name, ops)
        with open(os.path.join(out_dir, f'{name}.json'), 'w') as f:
            json.dump(badge(ops), f, indent=2)
    return wrote
