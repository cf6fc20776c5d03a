"""Tests for order transitions and gateway signal normalization."""

import pytest

from checkout.engine.state_machine import OrderStateMachine, normalize_callback, normalize_poll
from checkout.models.enums import GatewaySignal, OrderStatus


class TestTransitions:
    @pytest.mark.parametrize("target", [OrderStatus.COMPLETED, OrderStatus.FAILED])
    def test_pending_can_settle(self, target):
        assert OrderStateMachine.can_transition(OrderStatus.PENDING, target)

    @pytest.mark.parametrize("source", [OrderStatus.COMPLETED, OrderStatus.FAILED])
    @pytest.mark.parametrize("target", list(OrderStatus))
    def test_terminal_states_have_no_exits(self, source, target):
        assert not OrderStateMachine.can_transition(source, target)

    def test_terminal_flags(self):
        assert not OrderStatus.PENDING.is_terminal
        assert OrderStatus.COMPLETED.is_terminal
        assert OrderStatus.FAILED.is_terminal

    def test_signal_targets(self):
        assert OrderStateMachine.target_for(GatewaySignal.SUCCESS) is OrderStatus.COMPLETED
        assert OrderStateMachine.target_for(GatewaySignal.FAILURE) is OrderStatus.FAILED
        assert OrderStateMachine.target_for(GatewaySignal.STILL_PENDING) is None


class TestNormalization:
    @pytest.mark.parametrize(
        "code, expected",
        [
            ("PAYMENT_SUCCESS", GatewaySignal.SUCCESS),
            ("PAYMENT_ERROR", GatewaySignal.FAILURE),
            ("TIMED_OUT", GatewaySignal.FAILURE),
            ("TRANSACTION_NOT_FOUND", GatewaySignal.FAILURE),
            ("PAYMENT_PENDING", GatewaySignal.STILL_PENDING),
            ("INTERNAL_SERVER_ERROR", GatewaySignal.STILL_PENDING),
            (None, GatewaySignal.STILL_PENDING),
        ],
    )
    def test_poll_codes(self, code, expected):
        assert normalize_poll(code) is expected

    def test_callback_success_flag_wins(self):
        assert normalize_callback(True, "PAYMENT_SUCCESS") is GatewaySignal.SUCCESS

    def test_callback_pending_code(self):
        assert normalize_callback(False, "PAYMENT_PENDING") is GatewaySignal.STILL_PENDING

    @pytest.mark.parametrize("code", ["PAYMENT_ERROR", "PAYMENT_DECLINED", None])
    def test_callback_other_failures(self, code):
        assert normalize_callback(False, code) is GatewaySignal.FAILURE
