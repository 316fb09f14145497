import argparse
import logging
import sys

import numpy as np

from engine.setup_logging import setup_logging
from world.config import ConfigError, NoiseConfig, load_config
from world.fast_noise import set_seed, warmup

logger = logging.getLogger("main")

# Dark to bright, used by the ASCII slice
SHADES = " .:-=+*#%@"


def shade(value):
    """Map a noise value in [-1, 1] to a character"""
    t = (max(-1.0, min(1.0, value)) + 1.0) * 0.5
    return SHADES[min(int(t * len(SHADES)), len(SHADES) - 1)]


def positive_int(text):
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def cmd_sample(args, ctx):
    value = ctx.sample(args.x, args.y, args.z)
    print(f"{value:.12f}")


def cmd_slice(args, ctx):
    xs, ys = np.meshgrid(np.arange(args.width) * args.scale,
                         np.arange(args.height) * args.scale)
    values = ctx.sample_many(xs, ys, args.z)
    for row in values:
        print("".join(shade(v) for v in row))


def cmd_stats(args, ctx):
    rng = np.random.default_rng(args.rng_seed)
    coords = rng.uniform(-args.extent, args.extent, size=(3, args.count))
    values = ctx.sample_many(coords[0], coords[1], coords[2])
    print(f"count={values.size} min={values.min():.6f} "
          f"max={values.max():.6f} mean={values.mean():.6f}")


def build_parser():
    p = argparse.ArgumentParser(prog="snoise", description="3D simplex noise sampler")
    p.add_argument("--config", help="JSON noise config file")
    p.add_argument("--seed", type=float, help="seed offset (overrides config)")
    p.add_argument("--log-level", help="logging level (overrides config)")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("sample", help="sample a single point")
    s.add_argument("x", type=float)
    s.add_argument("y", type=float)
    s.add_argument("z", type=float)
    s.set_defaults(func=cmd_sample)

    s = sub.add_parser("slice", help="print an ASCII slice at fixed z")
    s.add_argument("--z", type=float, default=0.0)
    s.add_argument("--width", type=int, default=64)
    s.add_argument("--height", type=int, default=24)
    s.add_argument("--scale", type=float, default=0.1)
    s.set_defaults(func=cmd_slice)

    s = sub.add_parser("stats", help="value range over random samples")
    s.add_argument("--count", type=positive_int, default=100000)
    s.add_argument("--extent", type=float, default=1000.0)
    s.add_argument("--rng-seed", type=int, default=0)
    s.set_defaults(func=cmd_stats)
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config) if args.config else NoiseConfig()
        if args.seed is not None:
            cfg.seed = args.seed
        if args.log_level:
            cfg.log_level = args.log_level.upper()
        cfg.validate()
    except (ConfigError, OSError) as e:
        setup_logging("ERROR")
        logger.error("Configuration failed: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 2

    setup_logging(cfg.log_level)
    # Seed is fixed before any sampling starts
    ctx = set_seed(cfg.seed)
    warmup()
    args.func(args, ctx)
    return 0


if __name__ == "__main__":
    sys.exit(main())
