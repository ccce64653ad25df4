from wireplan.passes.auto_detect import auto_detect_tokens
from wireplan.passes.factories import collect_factories
from wireplan.passes.metadata import extract_metadata
from wireplan.passes.ordering import order_tokens
from wireplan.passes.registration import plan_registrations
from wireplan.passes.token_registry import collect_tokens

__all__ = [
    "auto_detect_tokens",
    "collect_factories",
    "collect_tokens",
    "extract_metadata",
    "order_tokens",
    "plan_registrations",
]
