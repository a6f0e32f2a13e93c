from datetime import datetime, timedelta, timezone

import pytest

from flashhold.core.exceptions import InvalidStateTransition
from flashhold.models import Hold, HoldStatus, Order, OrderStatus


def test_active_hold_can_be_used_or_expired():
    for target in (HoldStatus.USED, HoldStatus.EXPIRED):
        hold = Hold(id=1, status=HoldStatus.ACTIVE)
        hold.transition_to(target)
        assert hold.status == target


def test_used_hold_expires_on_payment_failure():
    hold = Hold(id=1, status=HoldStatus.USED)
    hold.transition_to(HoldStatus.EXPIRED)
    assert hold.status == HoldStatus.EXPIRED


@pytest.mark.parametrize("target", [HoldStatus.ACTIVE, HoldStatus.USED, HoldStatus.EXPIRED])
def test_expired_hold_is_terminal(target):
    hold = Hold(id=1, status=HoldStatus.EXPIRED)
    with pytest.raises(InvalidStateTransition):
        hold.transition_to(target)


def test_used_hold_cannot_become_active_again():
    hold = Hold(id=1, status=HoldStatus.USED)
    with pytest.raises(InvalidStateTransition):
        hold.transition_to(HoldStatus.ACTIVE)


def test_pending_order_settles_once():
    order = Order(id=1, status=OrderStatus.PENDING)
    assert not order.is_settled

    order.transition_to(OrderStatus.PAID)

    assert order.is_settled
    with pytest.raises(InvalidStateTransition):
        order.transition_to(OrderStatus.CANCELLED)


def test_cancelled_order_cannot_be_paid():
    order = Order(id=1, status=OrderStatus.CANCELLED)
    with pytest.raises(InvalidStateTransition):
        order.transition_to(OrderStatus.PAID)


def test_hold_expiry_is_two_minutes_by_default():
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert Hold.create_expiry(now=now) == now + timedelta(minutes=2)
    assert Hold.create_expiry(5, now=now) == now + timedelta(minutes=5)
