from django.dispatch import Signal

# Custom signals for order events, sent by SignalNotifier after commit.
# Receivers get ``event`` (an OrderEvent) as a keyword argument.
order_created = Signal()
order_status_changed = Signal()
