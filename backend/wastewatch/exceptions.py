"""
Exceptions raised by services and the detection engine.
"""


class SubscriptionNotFound(LookupError):
    """No subscription with the given id."""

    def __init__(self, subscription_id: str):
        super().__init__(f"Subscription {subscription_id} not found")
        self.subscription_id = subscription_id


class AlertNotFound(LookupError):
    """No alert with the given id."""

    def __init__(self, alert_id: str):
        super().__init__(f"Alert {alert_id} not found")
        self.alert_id = alert_id


class InvalidTransition(ValueError):
    """A subscription status change not allowed by the state machine."""

    def __init__(self, current, target):
        super().__init__(f"Cannot move subscription from {current.value} to {target.value}")
        self.current = current
        self.target = target


class PersistenceError(RuntimeError):
    """Storage failed while applying a detection run; nothing was written."""
