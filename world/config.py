import json
import logging
import math
from dataclasses import dataclass, fields
from pathlib import Path

from world.fast_noise import NoiseContext

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a noise configuration file holds unusable values"""


def _as_int(value):
    """Whole numbers only; bools and fractional floats are rejected"""
    if isinstance(value, bool):
        raise ConfigError(f"expected an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigError(f"expected an integer, got {value!r}")
    return int(value)


@dataclass
class NoiseConfig:
    seed: float = 0.0
    frequency: float = 0.09    # world units -> noise units for voxel queries
    chunk_size: int = 16
    threshold: float = 0.0     # density above this counts as solid
    log_level: str = "INFO"

    def validate(self):
        if not math.isfinite(self.seed):
            raise ConfigError(f"seed must be finite, got {self.seed!r}")
        if not (math.isfinite(self.frequency) and self.frequency > 0):
            raise ConfigError(f"frequency must be positive and finite, got {self.frequency!r}")
        if not math.isfinite(self.threshold):
            raise ConfigError(f"threshold must be finite, got {self.threshold!r}")
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int):
            raise ConfigError(f"chunk_size must be an integer, got {self.chunk_size!r}")
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size!r}")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"unknown log level {self.log_level!r}")
        return self

    def context(self):
        return NoiseContext(float(self.seed))

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        try:
            cfg = cls(
                seed=float(data.get("seed", cls.seed)),
                frequency=float(data.get("frequency", cls.frequency)),
                chunk_size=_as_int(data.get("chunk_size", cls.chunk_size)),
                threshold=float(data.get("threshold", cls.threshold)),
                log_level=str(data.get("log_level", cls.log_level)).upper(),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"bad config value: {e}") from e
        return cfg.validate()


def load_config(path):
    """Load a NoiseConfig from a JSON file"""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"{path}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a JSON object")
    cfg = NoiseConfig.from_dict(data)
    logger.debug("Loaded noise config from %s: %s", path, cfg)
    return cfg
