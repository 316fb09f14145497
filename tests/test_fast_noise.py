import math
import threading

import numpy as np
import pytest

from world import fast_noise
from world.fast_noise import (
    NOISE_NORMALIZER,
    NoiseContext,
    corner_contribution,
    get_context,
    lattice_hash,
    set_seed,
    simplex_steps,
    skew_to_cell,
    snoise,
    snoise3,
    snoise3_many,
)
from world.noise_tables import GRAD3, PERM


def reference_steps(x0, y0, z0):
    """Nested comparison tree of the classic construction"""
    if x0 >= y0:
        if y0 >= z0:
            return (1, 0, 0, 1, 1, 0)
        elif x0 >= z0:
            return (1, 0, 0, 1, 0, 1)
        else:
            return (0, 0, 1, 1, 0, 1)
    else:
        if y0 < z0:
            return (0, 0, 1, 0, 1, 1)
        elif x0 < z0:
            return (0, 1, 0, 0, 1, 1)
        else:
            return (0, 1, 0, 1, 1, 0)


def reference_noise(x, y, z, seed):
    """Plain Python transcription with explicit mod-256 hashing"""
    perm = PERM.tolist()
    x += seed
    s = (x + y + z) * (1.0 / 3.0)
    i, j, k = math.floor(x + s), math.floor(y + s), math.floor(z + s)
    t = (i + j + k) * (1.0 / 6.0)
    x0, y0, z0 = x - (i - t), y - (j - t), z - (k - t)
    i1, j1, k1, i2, j2, k2 = reference_steps(x0, y0, z0)
    g3 = 1.0 / 6.0
    corners = [
        (0, 0, 0, x0, y0, z0),
        (i1, j1, k1, x0 - i1 + g3, y0 - j1 + g3, z0 - k1 + g3),
        (i2, j2, k2, x0 - i2 + 2 * g3, y0 - j2 + 2 * g3, z0 - k2 + 2 * g3),
        (1, 1, 1, x0 - 1 + 3 * g3, y0 - 1 + 3 * g3, z0 - 1 + 3 * g3),
    ]
    i, j, k = i % 256, j % 256, k % 256
    total = 0.0
    for di, dj, dk, cx, cy, cz in corners:
        tc = 0.6 - cx * cx - cy * cy - cz * cz
        if tc < 0:
            continue
        h = perm[(i + di + perm[(j + dj + perm[(k + dk) % 256]) % 256]) % 256]
        g = GRAD3[h & 15]
        tc *= tc
        total += tc * tc * (g[0] * cx + g[1] * cy + g[2] * cz)
    return total / NOISE_NORMALIZER


@pytest.fixture(autouse=True)
def reset_seed():
    set_seed(0.0)
    yield
    set_seed(0.0)


def test_origin_is_exactly_zero():
    assert snoise3(0.0, 0.0, 0.0, 0.0) == 0.0
    assert snoise(0.0, 0.0, 0.0) == 0.0


def test_skew_to_cell_origin_and_negative_floor():
    assert skew_to_cell(0.0, 0.0, 0.0) == (0, 0, 0, 0.0, 0.0, 0.0)
    i, j, k, x0, y0, z0 = skew_to_cell(-1.0, -1.0, -1.0)
    # skewed point is (-2, -2, -2): an exact lattice vertex, so no offset
    assert (i, j, k) == (-2, -2, -2)
    assert x0 == pytest.approx(0.0, abs=1e-12)
    assert y0 == pytest.approx(0.0, abs=1e-12)
    assert z0 == pytest.approx(0.0, abs=1e-12)


@pytest.mark.parametrize("x0", [0.0, 0.25, 0.5])
@pytest.mark.parametrize("y0", [0.0, 0.25, 0.5])
@pytest.mark.parametrize("z0", [0.0, 0.25, 0.5])
def test_simplex_steps_match_comparison_tree_including_ties(x0, y0, z0):
    assert tuple(simplex_steps(x0, y0, z0)) == reference_steps(x0, y0, z0)


def test_lattice_hash_matches_nested_mod_hash():
    perm = PERM.tolist()
    rng = np.random.default_rng(3)
    for i, j, k in rng.integers(0, 256, size=(200, 3)):
        for di, dj, dk in [(0, 0, 0), (1, 0, 0), (0, 1, 1), (1, 1, 1)]:
            expected = perm[(i + di + perm[(j + dj + perm[(k + dk) % 256]) % 256]) % 256]
            assert lattice_hash(int(i + di), int(j + dj), int(k + dk)) == expected


def test_corner_outside_support_is_zero():
    assert corner_contribution(0.8, 0.0, 0.0, 0) == 0.0
    assert corner_contribution(0.0, 0.0, 0.0, 5) == 0.0
    # t = 0.6 - 0.25 = 0.35, gradient (1, 1, 0) . (0.5, 0, 0) = 0.5
    assert corner_contribution(0.5, 0.0, 0.0, 0) == pytest.approx(0.35 ** 4 * 0.5)


def test_matches_reference_construction():
    rng = np.random.default_rng(11)
    for x, y, z in rng.uniform(-300.0, 300.0, size=(500, 3)):
        assert snoise3(x, y, z, 0.0) == pytest.approx(reference_noise(x, y, z, 0.0), abs=1e-12)


def test_negative_cells_wrap_like_positive_ones():
    for x, y, z in [(-0.3, -7.2, -512.9), (-256.5, 3.1, -1.0), (-10000.25, -3.5, 2.75)]:
        assert snoise3(x, y, z, 0.0) == pytest.approx(reference_noise(x, y, z, 0.0), abs=1e-12)


def test_seed_is_an_x_translation():
    rng = np.random.default_rng(5)
    for x, y, z, s in rng.uniform(-500.0, 500.0, size=(300, 4)):
        assert snoise3(x, y, z, s) == snoise3(x + s, y, z, 0.0)


def test_seed_leaves_y_and_z_untouched():
    a = snoise3(1.5, 2.5, 3.5, 10.0)
    assert a == snoise3(11.5, 2.5, 3.5, 0.0)
    assert a != snoise3(1.5, 12.5, 3.5, 0.0)


def test_deterministic():
    values = [snoise3(12.34, -56.78, 9.1, 42.0) for _ in range(5)]
    assert len(set(values)) == 1
    ctx = NoiseContext(42.0)
    assert ctx.sample(12.34, -56.78, 9.1) == values[0]


def test_output_stays_near_unit_range():
    rng = np.random.default_rng(0)
    xs, ys, zs = rng.uniform(-1000.0, 1000.0, size=(3, 100_000))
    values = snoise3_many(xs, ys, zs, 0.0)
    assert np.isfinite(values).all()
    # the normalizer targets [-1, 1]; allow a small overshoot
    assert values.min() >= -1.1
    assert values.max() <= 1.1
    # and the noise actually uses most of that range
    assert values.max() - values.min() > 1.0


def test_small_steps_give_small_changes():
    rng = np.random.default_rng(1)
    xs, ys, zs = rng.uniform(-100.0, 100.0, size=(3, 5000))
    base = snoise3_many(xs, ys, zs, 0.0)
    delta = 1e-4
    for moved in (
        snoise3_many(xs + delta, ys, zs, 0.0),
        snoise3_many(xs, ys + delta, zs, 0.0),
        snoise3_many(xs, ys, zs + delta, 0.0),
    ):
        assert np.abs(moved - base).max() < 0.05


def test_batch_matches_scalar():
    rng = np.random.default_rng(2)
    xs, ys, zs = rng.uniform(-50.0, 50.0, size=(3, 64))
    batch = snoise3_many(xs, ys, zs, 3.25)
    scalar = np.array([snoise3(x, y, z, 3.25) for x, y, z in zip(xs, ys, zs)])
    assert (batch == scalar).all()


def test_context_sample_many_broadcasts():
    ctx = NoiseContext(7.0)
    xs = np.linspace(0.0, 3.0, 4)
    ys = np.linspace(0.0, 2.0, 3)[:, None]
    out = ctx.sample_many(xs, ys, 1.5)
    assert out.shape == (3, 4)
    assert out[2, 1] == pytest.approx(ctx.sample(xs[1], ys[2, 0], 1.5), abs=1e-12)


def test_context_sample_many_rejects_mismatched_shapes():
    with pytest.raises(ValueError):
        NoiseContext().sample_many(np.zeros(3), np.zeros(4), np.zeros(3))


def test_context_is_immutable():
    ctx = NoiseContext(1.0)
    with pytest.raises(AttributeError):
        ctx.seed = 2.0


def test_set_seed_swaps_process_context(caplog):
    before = get_context()
    with caplog.at_level("INFO", logger="world.fast_noise"):
        ctx = set_seed(4.5)
    assert get_context() is ctx
    assert ctx.seed == 4.5
    assert before.seed == 0.0
    assert snoise(1.0, 2.0, 3.0) == snoise3(5.5, 2.0, 3.0, 0.0)
    assert "seed changed" in caplog.text


def test_concurrent_sampling_is_consistent():
    points = np.random.default_rng(9).uniform(-20.0, 20.0, size=(200, 3))
    expected = [snoise3(x, y, z, 0.0) for x, y, z in points]
    results = {}

    def worker(n):
        results[n] = [snoise(x, y, z) for x, y, z in points]

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert all(r == expected for r in results.values())


def test_warmup_logs(caplog):
    with caplog.at_level("INFO", logger="world.fast_noise"):
        fast_noise.warmup()
    assert "JIT ready" in caplog.text
