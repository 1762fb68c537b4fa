"""
Route matching service.

Resolves the registered function for a request pathname.

Note:
    Provides functionality different from FastAPI's APIRouter.
    The gateway app has a single catch-all route; this module decides
    which function serves a path.
"""

import logging
from typing import Iterable, Optional

from ..models.function import FunctionEntity

logger = logging.getLogger("gateway.route_matcher")


def match_route(functions: Iterable[FunctionEntity], pathname: str) -> Optional[FunctionEntity]:
    """
    Return the first function, in registration order, whose pattern matches.

    Patterns:
        "/hello"           exact: matches "/hello" only
        "/api/{proxy+}"    proxy: matches "/api/<anything non-empty>",
                           never "/api/" itself
    """
    for function in functions:
        if not function.is_proxy:
            if pathname == function.path:
                return function
            continue

        prefix = function.prefix
        if pathname.startswith(prefix) and pathname != prefix:
            return function

    return None


class RouteMatcher:
    def __init__(self, function_registry):
        """
        Args:
            function_registry: FunctionRegistry instance
        """
        self.function_registry = function_registry

    def match_route(self, pathname: str) -> Optional[FunctionEntity]:
        """
        Resolve the target function from a request pathname.

        Returns:
            The matched FunctionEntity, or None (the caller answers 403)
        """
        matched = match_route(self.function_registry.functions, pathname)
        if matched is None:
            logger.debug(f"No route for {pathname}")
        return matched
