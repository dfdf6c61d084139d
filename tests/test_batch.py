import asyncio

import pytest

from core.batch import partition, run_batches


def test_partition_sizes():
    assert [len(b) for b in partition(list(range(12)), 5)] == [5, 5, 2]
    assert partition(list(range(3)), 5) == [[0, 1, 2]]
    assert partition([], 5) == []


def test_partition_rejects_zero_batch():
    with pytest.raises(ValueError):
        partition([1, 2], 0)


def run_tracked(items, batch_size, fail=()):
    events = []
    in_flight = {"now": 0, "max": 0}

    async def task(item):
        events.append(("start", item))
        in_flight["now"] += 1
        in_flight["max"] = max(in_flight["max"], in_flight["now"])
        await asyncio.sleep(0.001 * (item % 3))
        in_flight["now"] -= 1
        events.append(("end", item))
        if item in fail:
            raise RuntimeError(f"item {item} broke")
        return item * 10

    results = asyncio.run(run_batches(items, batch_size, task))
    return results, events, in_flight["max"]


def test_twelve_items_in_groups_of_five_keep_barrier_order():
    items = list(range(12))
    results, events, max_in_flight = run_tracked(items, 5)

    assert results == [i * 10 for i in items]
    assert sum(1 for kind, _ in events if kind == "start") == 12
    assert max_in_flight == 5

    position = {event: index for index, event in enumerate(events)}
    groups = partition(items, 5)
    assert [len(g) for g in groups] == [5, 5, 2]
    for previous, current in zip(groups, groups[1:]):
        last_end = max(position[("end", i)] for i in previous)
        first_start = min(position[("start", i)] for i in current)
        assert last_end < first_start


def test_failing_item_does_not_stop_siblings_or_later_groups():
    results, events, _ = run_tracked(list(range(7)), 3, fail={1})

    assert isinstance(results[1], RuntimeError)
    assert [r for i, r in enumerate(results) if i != 1] == [0, 20, 30, 40, 50, 60]
    assert {item for kind, item in events if kind == "end"} == set(range(7))
