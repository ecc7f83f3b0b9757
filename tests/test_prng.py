import pytest

from src.selection.prng import SplitMix64, fnv1a_32, fnv1a_64, rng_for


def test_fnv1a_32_reference_vectors():
    assert fnv1a_32("") == 0x811C9DC5
    assert fnv1a_32("a") == 0xE40C292C
    assert fnv1a_32("foobar") == 0xBF9CF968


def test_fnv1a_64_reference_vectors():
    assert fnv1a_64("") == 0xCBF29CE484222325
    assert fnv1a_64("a") == 0xAF63DC4C8601EC8C
    assert fnv1a_64("foobar") == 0x85944171F73967E8


def test_splitmix64_reference_sequence():
    rng = SplitMix64(0)
    assert rng.next_u64() == 0xE220A8397B1DCDAF
    assert rng.next_u64() == 0x6E789E6AA1B965F4
    assert rng.next_u64() == 0x06C45D188009454F


def test_random_is_unit_interval():
    rng = SplitMix64(42)
    values = [rng.random() for _ in range(1000)]
    assert all(0.0 <= v < 1.0 for v in values)


def test_randbelow_covers_range():
    rng = SplitMix64(7)
    seen = {rng.randbelow(5) for _ in range(500)}
    assert seen == {0, 1, 2, 3, 4}


def test_randbelow_rejects_non_positive():
    with pytest.raises(ValueError):
        SplitMix64(1).randbelow(0)


def test_rng_for_is_stable_per_seed():
    a = [rng_for("2026-01-27", "morning").next_u64() for _ in range(3)]
    b = [rng_for("2026-01-27", "morning").next_u64() for _ in range(3)]
    c = rng_for("2026-01-27", "night").next_u64()
    assert a == b
    assert a[0] != c
