import numpy as np

from blipmachine.decisions import DecisionSource


def test_same_seed_gives_same_draws() -> None:
    a = DecisionSource(1234)
    b = DecisionSource(1234)
    assert [a.next() for _ in range(32)] == [b.next() for _ in range(32)]


def test_draws_are_in_unit_interval() -> None:
    source = DecisionSource(0)
    values = np.array([source.next() for _ in range(2000)])
    assert np.all(values >= 0.0)
    assert np.all(values < 1.0)
    assert source.draws == 2000
    # Loose sanity check on uniformity.
    assert 0.4 < values.mean() < 0.6


def test_spawned_streams_are_reproducible_and_distinct() -> None:
    parent_a = DecisionSource(7)
    parent_b = DecisionSource(7)
    child_a = parent_a.spawn()
    child_b = parent_b.spawn()
    seq_a = [child_a.next() for _ in range(16)]
    assert seq_a == [child_b.next() for _ in range(16)]
    assert seq_a != [parent_a.next() for _ in range(16)]
    assert child_a.spawn_key == (0,)


def test_successive_spawns_differ() -> None:
    parent = DecisionSource(3)
    first = parent.spawn()
    second = parent.spawn()
    assert first.spawn_key != second.spawn_key
    assert [first.next() for _ in range(8)] != [second.next() for _ in range(8)]


def test_spawning_does_not_consume_parent_draws() -> None:
    plain = DecisionSource(11)
    forked = DecisionSource(11)
    forked.spawn()
    assert [plain.next() for _ in range(8)] == [forked.next() for _ in range(8)]


def test_iterator_protocol() -> None:
    source = DecisionSource(5)
    first = next(iter(source))
    assert 0.0 <= first < 1.0
