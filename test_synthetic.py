import datetime as dt

import pytest

np = pytest.importorskip("numpy")

from stakecast.synthetic import generate_synthetic_execution_history, generate_synthetic_history

END = dt.datetime(2024, 6, 30)


def test_synthetic_history_is_reproducible_with_seed():
    first = generate_synthetic_history(30, seed=42, end=END)
    second = generate_synthetic_history(30, seed=42, end=END)
    assert first == second
    assert first != generate_synthetic_history(30, seed=43, end=END)


def test_synthetic_history_shape():
    points = generate_synthetic_history(30, seed=1, end=END)
    assert len(points) == 31
    assert points[-1].timestamp == END
    assert points[0].timestamp == END - dt.timedelta(days=30)
    stakes = [p.total_staked for p in points]
    assert stakes == sorted(stakes)
    assert all(5000 <= p.entry_queue_length < 15000 for p in points)
    assert all(500 <= p.exit_queue_length < 2500 for p in points)
    assert all(p.active_validators == int(p.total_staked // 32) for p in points)


def test_explicit_generator_is_used():
    rng = np.random.default_rng(7)
    a = generate_synthetic_history(5, rng=rng, end=END)
    b = generate_synthetic_history(5, rng=np.random.default_rng(7), end=END)
    assert a == b


def test_synthetic_execution_history():
    points = generate_synthetic_execution_history(60, 1_000_000, seed=3, end=END)
    assert len(points) == 61
    assert points == generate_synthetic_execution_history(60, 1_000_000, seed=3, end=END)
    for p in points:
        assert p.priority_fees >= 0 and p.mev_rewards >= 0
        share = p.priority_fees / (p.priority_fees + p.mev_rewards)
        assert share == pytest.approx(min(max(share, 0.35), 0.45))
        assert 10.0 <= p.avg_gas_price < 60.0
        assert p.block_count == 7200


def test_negative_days_rejected():
    with pytest.raises(ValueError):
        generate_synthetic_history(-1)
