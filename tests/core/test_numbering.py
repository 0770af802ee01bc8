"""
DocFlow — Sequence Numbering Tests
==================================
Monotonic file counters, gap-filling sequences, the registry.
"""

import threading

import pytest

from core.numbering import (
    POLICY_GAP_FILLING,
    CounterSpec,
    FileCounter,
    GapFillingSequence,
    SequenceRegistry,
    coerce_numbers,
    smallest_unused,
)
from core.store import medium
from core.store.errors import PersistenceError

FLOOR = 100000


def _counter(tmp_path, floor=FLOOR) -> FileCounter:
    spec = CounterSpec(name="order", floor=floor)
    return FileCounter(spec, tmp_path / spec.file_name)


def _run_concurrently(target, workers=8):
    threads = [threading.Thread(target=target) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


# ══════════════════════════════════════════════════════════════
# COUNTER SPEC
# ══════════════════════════════════════════════════════════════

class TestCounterSpec:
    def test_file_name_and_format(self):
        spec = CounterSpec(name="rma", floor=500000)
        assert spec.file_name == "rma_counter.txt"
        assert spec.format_number(500001) == "500001"

    def test_rejects_unknown_policy(self):
        with pytest.raises(ValueError, match="not valid"):
            CounterSpec(name="rma", floor=1, policy="RANDOM")

    def test_rejects_negative_floor(self):
        with pytest.raises(ValueError, match=">= 0"):
            CounterSpec(name="rma", floor=-1)


# ══════════════════════════════════════════════════════════════
# MONOTONIC FILE COUNTER
# ══════════════════════════════════════════════════════════════

class TestFileCounter:
    def test_first_number_is_floor_plus_one(self, tmp_path):
        counter = _counter(tmp_path)
        assert counter.next() == FLOOR + 1
        assert counter.next() == FLOOR + 2
        assert (tmp_path / "order_counter.txt").read_text().strip() == str(FLOOR + 2)

    def test_survives_restart(self, tmp_path):
        _counter(tmp_path).next()
        assert _counter(tmp_path).next() == FLOOR + 2

    def test_current_without_issuing(self, tmp_path):
        counter = _counter(tmp_path)
        assert counter.current() == FLOOR
        counter.next()
        assert counter.current() == FLOOR + 1

    @pytest.mark.parametrize("content", ["", "   ", "abc", "12"])
    def test_self_heals_bad_content(self, tmp_path, content):
        (tmp_path / "order_counter.txt").write_text(content)
        assert _counter(tmp_path).next() == FLOOR + 1

    def test_self_heals_non_utf8_content(self, tmp_path, caplog):
        path = tmp_path / "order_counter.txt"
        path.write_bytes(b"\xff\xff")

        with caplog.at_level("WARNING", logger="docflow.numbering"):
            issued = _counter(tmp_path).next()

        assert issued == FLOOR + 1
        assert path.read_text(encoding="utf-8") == str(FLOOR + 1)
        assert "not valid UTF-8" in caplog.text

    def test_release_does_not_reissue(self, tmp_path):
        counter = _counter(tmp_path)
        issued = counter.next()
        counter.release(issued)
        assert counter.next() == issued + 1

    def test_concurrent_calls_yield_distinct_gapless_values(self, tmp_path):
        counter = _counter(tmp_path)
        issued = []
        lock = threading.Lock()

        def take():
            for _ in range(25):
                value = counter.next()
                with lock:
                    issued.append(value)

        _run_concurrently(take)

        assert sorted(issued) == list(range(FLOOR + 1, FLOOR + 201))

    def test_write_failure_raises(self, tmp_path, monkeypatch):
        counter = _counter(tmp_path)
        counter.next()

        def boom(path, content):
            raise OSError("read-only")

        monkeypatch.setattr(medium, "write_text_atomic", boom)
        with pytest.raises(PersistenceError, match="read-only"):
            counter.next()


# ══════════════════════════════════════════════════════════════
# GAP FILLING
# ══════════════════════════════════════════════════════════════

class TestGapFilling:
    def test_smallest_unused(self):
        assert smallest_unused([], FLOOR) == FLOOR
        assert smallest_unused([FLOOR, FLOOR + 2], FLOOR) == FLOOR + 1
        assert smallest_unused([FLOOR, FLOOR + 1], FLOOR) == FLOOR + 2
        assert smallest_unused([5, 6], FLOOR) == FLOOR

    def test_coerce_ignores_non_numeric(self):
        assert coerce_numbers(["100000", None, "", "abc", " 100003 "]) == {100000, 100003}

    def test_deleted_number_is_reused(self):
        stored = ["100000", "100001", "100002"]
        sequence = GapFillingSequence(
            CounterSpec(name="order", floor=FLOOR, policy=POLICY_GAP_FILLING),
            lambda: stored,
        )
        stored.remove("100001")
        assert sequence.next() == 100001

    def test_reservation_prevents_duplicate_until_released(self):
        stored = ["100000"]
        sequence = GapFillingSequence(
            CounterSpec(name="order", floor=FLOOR, policy=POLICY_GAP_FILLING),
            lambda: stored,
        )
        first = sequence.next()
        second = sequence.next()
        assert (first, second) == (100001, 100002)

        sequence.release(second)
        assert sequence.next() == 100002

    def test_concurrent_callers_never_share_a_value(self):
        sequence = GapFillingSequence(
            CounterSpec(name="order", floor=FLOOR, policy=POLICY_GAP_FILLING),
            lambda: [],
        )
        issued = []
        lock = threading.Lock()

        def take():
            for _ in range(10):
                value = sequence.next()
                with lock:
                    issued.append(value)

        _run_concurrently(take)

        assert len(set(issued)) == len(issued) == 80

    def test_current_is_highest_stored(self):
        sequence = GapFillingSequence(
            CounterSpec(name="order", floor=FLOOR, policy=POLICY_GAP_FILLING),
            lambda: ["100004", "100001"],
        )
        assert sequence.current() == 100004


# ══════════════════════════════════════════════════════════════
# REGISTRY
# ══════════════════════════════════════════════════════════════

class TestSequenceRegistry:
    def test_counters_are_independent(self, tmp_path):
        registry = SequenceRegistry(
            tmp_path,
            (CounterSpec(name="order", floor=100000), CounterSpec(name="invoice", floor=200000)),
        )
        assert registry.next("order") == 100001
        assert registry.next("invoice") == 200001
        assert registry.next("order") == 100002

    def test_reserve_yields_formatted_number(self, tmp_path):
        registry = SequenceRegistry(tmp_path, (CounterSpec(name="rma", floor=500000),))
        with registry.reserve("rma") as number:
            assert number == "500001"
        assert registry.next_number("rma") == "500002"

    def test_reserve_releases_gap_filling_on_failure(self, tmp_path):
        registry = SequenceRegistry(
            tmp_path, (CounterSpec(name="order", floor=FLOOR, policy=POLICY_GAP_FILLING),)
        )
        registry.register_supplier("order", lambda: [])

        with pytest.raises(RuntimeError):
            with registry.reserve("order") as number:
                assert number == "100000"
                raise RuntimeError("save failed")

        with registry.reserve("order") as number:
            assert number == "100000"

    def test_unknown_counter(self, tmp_path):
        registry = SequenceRegistry(tmp_path)
        with pytest.raises(KeyError, match="not registered"):
            registry.next("nope")

    def test_gap_filling_requires_supplier(self, tmp_path):
        registry = SequenceRegistry(
            tmp_path, (CounterSpec(name="order", floor=FLOOR, policy=POLICY_GAP_FILLING),)
        )
        with pytest.raises(ValueError, match="no number supplier"):
            registry.next("order")

    def test_spec_cannot_be_replaced_after_use(self, tmp_path):
        registry = SequenceRegistry(tmp_path, (CounterSpec(name="order", floor=FLOOR),))
        registry.next("order")
        with pytest.raises(ValueError, match="already in use"):
            registry.register_spec(CounterSpec(name="order", floor=1))
