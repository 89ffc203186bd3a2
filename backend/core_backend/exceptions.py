"""
Error taxonomy for cart, discount and order operations.

Validation-type errors are recoverable: the caller reports them and nothing
has changed. ``TransactionFailure`` means the dual write did not commit and
the checkout can be retried. ``PostCommitSideEffectFailure`` means the order
is final but a follow-up (loyalty ledger) did not happen; it must not be
retried blindly against the same order.
"""


class OrderEngineError(Exception):
    """Base class for every error raised by the order engine."""

    code = "order_engine_error"
    default_message = "The request could not be completed."
    user_message = "Something went wrong. Please try again."
    retry_safe = True

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class ValidationError(OrderEngineError):
    code = "validation_error"
    default_message = "Invalid input."
    user_message = "Please check your input and try again."


class CrossRestaurantItem(ValidationError):
    code = "cross_restaurant_item"
    default_message = "Cart already contains items from another restaurant."
    user_message = "You can only order from one restaurant at a time!"


class InvalidCheckoutState(ValidationError):
    code = "invalid_checkout_state"
    default_message = "Cart is not ready for checkout."


class InvalidLoyaltyRedemption(ValidationError):
    code = "invalid_loyalty_redemption"
    default_message = "Not enough points for any discount tier."
    user_message = "You don't have enough points for a discount yet."


class MissingCustomerReference(ValidationError):
    code = "missing_customer_reference"
    default_message = "A customer id is required to address the customer's order copy."


class ImmutableFieldError(ValidationError):
    code = "immutable_field"
    default_message = "Attempted to modify an immutable order field."


class ConflictingDiscount(OrderEngineError):
    code = "conflicting_discount"
    default_message = "Only one discount (coupon or loyalty points) can be applied per order."
    user_message = "Remove the current discount before applying another one."


class InvalidCoupon(OrderEngineError):
    code = "invalid_coupon"
    default_message = "Invalid coupon code."
    user_message = "Invalid coupon code"


class IllegalTransition(OrderEngineError):
    code = "illegal_transition"
    default_message = "Order status transition is not allowed."
    user_message = "This order can no longer be moved to that status."


class OrderNotFound(OrderEngineError):
    code = "order_not_found"
    default_message = "Order not found."
    user_message = "We couldn't find that order."


class InsufficientLoyaltyBalance(OrderEngineError):
    code = "insufficient_loyalty_balance"
    default_message = "Loyalty balance is too low for this redemption."
    user_message = "You don't have enough points for this discount."


class TransactionFailure(OrderEngineError):
    code = "transaction_failure"
    default_message = "The order could not be saved."
    user_message = "Your order failed. Your cart has been kept, please try again."


class PostCommitSideEffectFailure(OrderEngineError):
    """
    Raised after an order committed but a follow-up update failed.

    ``order`` holds the committed order so callers can still show it.
    """

    code = "post_commit_side_effect_failure"
    default_message = "Order saved but a follow-up update failed."
    user_message = "Your order succeeded but a reward wasn't applied. Our team has been notified."
    retry_safe = False

    def __init__(self, message=None, order=None, **context):
        self.order = order
        super().__init__(message, **context)
