"""
Base class for groups of remote operations bound to a MarketoClient.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional

if TYPE_CHECKING:
    from .client import MarketoClient


class ClientProxy:
    """
    Proxies remote calls to a client and converts local objects to call parameters.

    Objects passed to an operation may provide `params_for_<operation>()`; when
    they do, its return value is sent instead of the object itself.
    """

    def __init__(self, client: "MarketoClient"):
        self.client = client

    def call(self, method: str, message: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.call(method, message)

    def extract_from_response(
        self,
        response: Optional[Dict[str, Any]],
        key: Optional[str] = None,
        transform: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """Pick `key` out of a parsed result, then apply `transform` to it if it is present."""
        if response is not None and key is not None:
            response = response.get(key)
        if response is None or transform is None:
            return response
        return transform(response)

    def transform_param(self, method: str, param: Any) -> Any:
        converter = getattr(param, f"params_for_{method}", None)
        if callable(converter):
            return converter()
        return param

    def transform_param_list(self, method: str, params: Iterable[Any]) -> List[Any]:
        return [self.transform_param(method, param) for param in params]
