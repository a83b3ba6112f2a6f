from app.models.user import User
from app.models.recipe_usage import RecipeUsage
from app.models.subscription_event import SubscriptionEvent
from app.models.webhook_event_failure import WebhookEventFailure

__all__ = [
    "User",
    "RecipeUsage",
    "SubscriptionEvent",
    "WebhookEventFailure",
]
