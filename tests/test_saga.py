"""Tests for step-by-step compensation."""

import pytest

from storefront.services.saga import Saga


class Boom(Exception):
    pass


def fail():
    raise Boom()


def test_success_runs_no_compensation():
    calls = []
    with Saga("test") as saga:
        first = saga.run("a", lambda: 1, compensate=lambda r: calls.append(("undo a", r)))
        second = saga.run("b", lambda: 2)
    assert (first, second) == (1, 2)
    assert calls == []


def test_compensates_in_reverse_order_with_step_results():
    calls = []

    with pytest.raises(Boom):
        with Saga("test") as saga:
            saga.run("a", lambda: "A", compensate=lambda r: calls.append(r))
            saga.run("b", lambda: "B", compensate=lambda r: calls.append(r))
            saga.run("c", fail, compensate=lambda r: calls.append(r))

    # krok ktory padl nie ma czego kompensowac
    assert calls == ["B", "A"]


def test_failed_compensation_does_not_stop_the_rest():
    calls = []

    def broken(_):
        raise RuntimeError("db down")

    saga = Saga("test")
    saga.run("a", lambda: "A", compensate=lambda r: calls.append(r))
    saga.run("b", lambda: "B", compensate=broken)

    done, failed = saga.compensate()

    assert (done, failed) == (1, 1)
    assert calls == ["A"]


def test_before_compensate_called():
    events = []
    saga = Saga("test", before_compensate=lambda: events.append("rollback"))
    saga.run("a", lambda: None, compensate=lambda _: events.append("undo"))

    saga.compensate()

    assert events == ["rollback", "undo"]


def test_compensations_run_once():
    calls = []
    saga = Saga("test")
    saga.run("a", lambda: "A", compensate=lambda r: calls.append(r))
    saga.compensate()
    saga.compensate()
    assert calls == ["A"]
