"""Tests for DeliveryService: token checks and delivery at the counter."""

import pytest

from tire_kernel.domain.dtos import TokenRejection
from tire_kernel.exceptions import (
    AlreadyRedeemedError,
    InvalidTransitionError,
    StationMismatchError,
    TokenNotFoundError,
)
from tire_kernel.models.request import RequestStatus
from tire_kernel.selectors.request_selector import RequestSelector
from tire_kernel.services.inventory_store import InventoryStore


class TestValidateToken:
    def test_ready_request_at_its_station(self, delivery, ready_request, station):
        validation = delivery.validate_token(ready_request.token, station.id)

        assert validation.valid is True
        assert validation.reason is None
        assert validation.request.id == ready_request.id

    def test_unknown_token(self, delivery, station):
        validation = delivery.validate_token("0" * 64, station.id)

        assert validation.valid is False
        assert validation.reason == TokenRejection.TOKEN_NOT_FOUND
        assert validation.request is None

    def test_not_ready(self, delivery, issuer, user_id, station, leger_tire, set_stock):
        set_stock(station.id, leger_tire.id, 3)
        issued = issuer.create(user_id, leger_tire.id, station.id, 1)

        validation = delivery.validate_token(issued.request.token, station.id)

        assert validation.valid is False
        assert validation.reason == TokenRejection.NOT_READY

    def test_wrong_station(self, delivery, ready_request, other_station):
        validation = delivery.validate_token(ready_request.token, other_station.id)

        assert validation.valid is False
        assert validation.reason == TokenRejection.STATION_MISMATCH

    def test_redeemed_reported_before_status(
        self, delivery, ready_request, station, other_station, actor_id
    ):
        delivery.complete_delivery(ready_request.token, station.id, actor_id)

        # Delivered requests are also not READY; redemption wins.
        validation = delivery.validate_token(ready_request.token, other_station.id)
        assert validation.reason == TokenRejection.ALREADY_REDEEMED

    def test_validation_is_read_only(
        self, delivery, ready_request, station, event_count
    ):
        delivery.validate_token(ready_request.token, station.id)
        delivery.validate_token(ready_request.token, station.id)

        assert event_count(ready_request.id) == 3

    def test_standalone_call_ends_read_transaction(
        self, session, session_factory, clock, delivery, ready_request, station, leger_tire
    ):
        session.commit()

        delivery.validate_token(ready_request.token, station.id)

        assert not session.in_transaction()
        # Another session can write without waiting on this one.
        writer = session_factory()
        try:
            InventoryStore(writer, clock).set_quantity(station.id, leger_tire.id, 5)
            writer.commit()
        finally:
            writer.close()

    def test_open_unit_of_work_left_to_caller(
        self, session, delivery, ready_request, station, stock_of, leger_tire
    ):
        stock_of(station.id, leger_tire.id)
        assert session.in_transaction()

        delivery.validate_token(ready_request.token, station.id)

        assert session.in_transaction()
        session.rollback()


class TestCompleteDelivery:
    def test_marks_delivered_and_consumes_token(
        self, delivery, ready_request, station, actor_id, session
    ):
        result = delivery.complete_delivery(ready_request.token, station.id, actor_id)

        assert result.previous_status == RequestStatus.READY
        assert result.request.status == RequestStatus.DELIVERED
        assert result.request.redeemed is True
        assert result.request.delivered_at is not None

    def test_default_note(self, delivery, clock, ready_request, station, actor_id, session):
        clock.tick()
        delivery.complete_delivery(ready_request.token, station.id, actor_id)

        latest = RequestSelector(session).history(ready_request.id)[0]
        assert latest.status == RequestStatus.DELIVERED
        assert latest.note == "Delivered via QR code scan"
        assert latest.actor_id == actor_id

    def test_token_single_use(self, delivery, ready_request, station, actor_id):
        delivery.complete_delivery(ready_request.token, station.id, actor_id)

        with pytest.raises(AlreadyRedeemedError):
            delivery.complete_delivery(ready_request.token, station.id, actor_id)

    def test_delivery_keeps_stock_consumed(
        self, delivery, ready_request, station, leger_tire, actor_id, stock_of
    ):
        delivery.complete_delivery(ready_request.token, station.id, actor_id)

        assert stock_of(station.id, leger_tire.id) == 8

    def test_unknown_token(self, delivery, station, actor_id):
        with pytest.raises(TokenNotFoundError):
            delivery.complete_delivery("a" * 64, station.id, actor_id)

    def test_wrong_station(self, delivery, ready_request, other_station, actor_id, event_count):
        with pytest.raises(StationMismatchError) as exc_info:
            delivery.complete_delivery(ready_request.token, other_station.id, actor_id)

        assert exc_info.value.expected_station_id == str(ready_request.station_id)
        assert event_count(ready_request.id) == 3

    def test_not_ready(
        self, delivery, lifecycle, issuer, user_id, station, leger_tire, set_stock, actor_id
    ):
        set_stock(station.id, leger_tire.id, 3)
        issued = issuer.create(user_id, leger_tire.id, station.id, 1)
        lifecycle.transition(issued.request.id, RequestStatus.PREPARING, actor_id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            delivery.complete_delivery(issued.request.token, station.id, actor_id)
        assert exc_info.value.current_status == "preparing"

    def test_cancelled_request_cannot_be_delivered(
        self, delivery, lifecycle, ready_request, station, actor_id
    ):
        lifecycle.cancel(ready_request.id, actor_id)

        with pytest.raises(InvalidTransitionError):
            delivery.complete_delivery(ready_request.token, station.id, actor_id)
