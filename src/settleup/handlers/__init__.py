from settleup.handlers.basic import basic_router
from settleup.handlers.expenses import expenses_router
from settleup.handlers.groups import groups_router

__all__ = ["basic_router", "expenses_router", "groups_router"]
