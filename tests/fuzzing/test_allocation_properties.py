"""
Hypothesis-based property tests.

Properties checked:
- State machine: any sequence of attempted moves from PENDING ends in a
  reachable status, and nothing leaves a terminal status.
- Quantity bounds: validate_quantity accepts exactly min..max.
- Stock conservation: over random create / cancel sequences against one
  station, stock + units held by non-cancelled requests == initial stock,
  and stock never goes negative.
"""

from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from tire_kernel.domain.lifecycle import TERMINAL_STATUSES, can_transition
from tire_kernel.domain.quota_policy import QuotaPolicy
from tire_kernel.exceptions import (
    InvalidQuantityError,
    InvalidTransitionError,
    OutOfStockError,
)
from tire_kernel.models.request import RequestStatus
from tire_kernel.models.station import Station
from tire_kernel.models.tire import TireDefinition
from tire_kernel.services.inventory_store import InventoryStore

statuses = st.sampled_from(list(RequestStatus))


class TestStateMachineProperties:
    @given(moves=st.lists(statuses, max_size=12))
    def test_terminal_is_absorbing(self, moves):
        current = RequestStatus.PENDING
        for target in moves:
            if current in TERMINAL_STATUSES:
                assert not can_transition(current, target)
            if can_transition(current, target):
                current = target

    @given(current=statuses, target=statuses)
    def test_no_self_loops(self, current, target):
        if current == target:
            assert not can_transition(current, target)


class TestQuantityBounds:
    @given(
        low=st.integers(min_value=1, max_value=4),
        span=st.integers(min_value=0, max_value=3),
        quantity=st.integers(min_value=-10, max_value=20),
    )
    def test_accepts_exactly_the_range(self, low, span, quantity):
        policy = QuotaPolicy(min_quantity=low, max_quantity=low + span)
        if low <= quantity <= low + span:
            policy.validate_quantity(quantity)
        else:
            with pytest.raises(InvalidQuantityError):
                policy.validate_quantity(quantity)


operations = st.lists(
    st.one_of(
        st.tuples(st.just("create"), st.integers(min_value=1, max_value=4)),
        st.tuples(st.just("cancel"), st.integers(min_value=0, max_value=20)),
    ),
    min_size=1,
    max_size=12,
)


class TestStockConservation:
    @settings(
        max_examples=25,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(initial=st.integers(min_value=0, max_value=10), ops=operations)
    def test_stock_is_conserved(
        self, session, clock, issuer, lifecycle, make_user, initial, ops
    ):
        # Fresh pair per example; the database outlives examples.
        station = Station(code=f"PB-{uuid4().hex[:12]}", name="Property station")
        tire = TireDefinition(category="LEGER", dimension=f"PB {uuid4().hex[:12]}")
        session.add_all([station, tire])
        session.commit()
        inventory = InventoryStore(session, clock)
        inventory.set_quantity(station.id, tire.id, initial)
        session.commit()

        held: dict = {}
        for op, arg in ops:
            if op == "create":
                try:
                    issued = issuer.create(make_user(), tire.id, station.id, arg)
                except OutOfStockError:
                    continue
                held[issued.request.id] = arg
            elif held:
                request_id = list(held)[arg % len(held)]
                try:
                    lifecycle.cancel(request_id, uuid4())
                except InvalidTransitionError:
                    continue
                held[request_id] = 0

            stock = inventory.quantity(station.id, tire.id)
            assert stock >= 0
            assert stock + sum(held.values()) == initial
