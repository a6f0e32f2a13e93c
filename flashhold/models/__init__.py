from flashhold.models.user import User
from flashhold.models.product import Product
from flashhold.models.hold import Hold, HoldStatus, HOLD_TRANSITIONS
from flashhold.models.order import Order, OrderStatus, ORDER_TRANSITIONS
