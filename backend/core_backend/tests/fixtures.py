"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like menu items, carts, delivery details and loyalty accounts.
"""
import pytest
from decimal import Decimal

from cart.services import CartStore
from customers.models import LoyaltyAccount


RESTAURANT_A = "rest-spice-route"
RESTAURANT_B = "rest-dosa-corner"
CUSTOMER_ID = "cust-asha"


# ============================================================================
# MENU FIXTURES
# ============================================================================

@pytest.fixture
def thali():
    """Menu item from restaurant A priced at 200"""
    return {"id": "item-thali", "name": "Veg Thali", "price": Decimal("200.00"), "restaurant_id": RESTAURANT_A}


@pytest.fixture
def lassi():
    """Menu item from restaurant A priced at 60"""
    return {"id": "item-lassi", "name": "Sweet Lassi", "price": Decimal("60.00"), "restaurant_id": RESTAURANT_A}


@pytest.fixture
def masala_dosa():
    """Menu item from restaurant B"""
    return {"id": "item-dosa", "name": "Masala Dosa", "price": Decimal("120.00"), "restaurant_id": RESTAURANT_B}


# ============================================================================
# CART FIXTURES
# ============================================================================

@pytest.fixture
def session_storage():
    """Plain dict standing in for request.session"""
    return {}


@pytest.fixture
def cart(session_storage):
    """Empty cart backed by session_storage"""
    return CartStore(session_storage)


@pytest.fixture
def thali_cart(cart, thali):
    """Cart holding one Veg Thali (subtotal 200)"""
    cart.add_item(thali)
    return cart


# ============================================================================
# CHECKOUT FIXTURES
# ============================================================================

@pytest.fixture
def customer_id():
    return CUSTOMER_ID


@pytest.fixture
def delivery_info():
    return {
        "address": "12 MG Road, Bengaluru",
        "customer_name": "Asha Rao",
        "customer_phone": "+91 98450 00000",
    }


@pytest.fixture
def loyalty_account(db, customer_id):
    """Loyalty account with 250 points"""
    return LoyaltyAccount.objects.create(customer_id=customer_id, points_balance=250)


@pytest.fixture
def placed_order(db, thali_cart, customer_id, delivery_info, django_capture_on_commit_callbacks):
    """Pending order placed from thali_cart"""
    from orders.services import OrderWriter

    with django_capture_on_commit_callbacks(execute=True):
        order = OrderWriter.place_order(thali_cart, customer_id, delivery_info, "cash")
    return order
