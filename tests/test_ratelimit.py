# RCD - tests - rate limiting
# Copyright (C) 2025  Clyso GmbH
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.

import inspect
import time
from concurrent.futures import ThreadPoolExecutor

from rcdlib.core.ratelimit import RateLimiter
from rcdlib.routes._utils import rate_limited


class _Clock:
    now: float

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_limit_within_window() -> None:
    clock = _Clock()
    limiter = RateLimiter(3, 60.0, clock=clock)

    results = [limiter.check("k") for _ in range(4)]
    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].reset_after == 60.0


def test_window_slides() -> None:
    clock = _Clock()
    limiter = RateLimiter(2, 60.0, clock=clock)

    assert limiter.check("k").allowed
    clock.now += 30
    assert limiter.check("k").allowed
    assert not limiter.check("k").allowed

    # the first request falls out of the window.
    clock.now += 31
    res = limiter.check("k")
    assert res.allowed
    assert res.remaining == 0


def test_keys_are_independent() -> None:
    limiter = RateLimiter(1, 60.0, clock=_Clock())
    assert limiter.check("a").allowed
    assert limiter.check("b").allowed
    assert not limiter.check("a").allowed

    limiter.clear("a")
    assert limiter.check("a").allowed


def test_instances_do_not_share_state() -> None:
    clock = _Clock()
    first = RateLimiter(1, 60.0, clock=clock)
    second = RateLimiter(1, 60.0, clock=clock)
    assert first.check("k").allowed
    assert second.check("k").allowed


def test_concurrent_checks_never_overshoot() -> None:
    def slow_clock() -> float:
        # yield to other threads between reading and updating the window.
        time.sleep(0.0001)
        return 1000.0

    limiter = RateLimiter(50, 60.0, clock=slow_clock)
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: limiter.check("k"), range(200)))

    assert sum(r.allowed for r in results) == 50
    assert limiter.check("k").remaining == 0


def test_route_dependency_runs_on_event_loop() -> None:
    assert inspect.iscoroutinefunction(rate_limited)
