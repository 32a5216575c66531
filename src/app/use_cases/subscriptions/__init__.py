from .update_subscription_status import UpdateSubscriptionStatus
from .create_plan import CreatePlan

__all__ = [
    "UpdateSubscriptionStatus",
    "CreatePlan",
]
