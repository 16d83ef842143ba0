"""
Model - per-render data source for controllers.

A Model is instantiated fresh with the exchange for every render.
``get_data()`` (plain or coroutine) returns a mapping, another Model, or
any value; non-mapping values reach the view as ``data``. By default a
Model returns itself, so public attributes set in ``__init__`` become the
view data.

Example:
    class HomeModel(Model):
        config = {"title": "Home"}

        async def get_data(self):
            return {"items": await load_items()}
"""

from typing import Any, Dict, Mapping, Optional

from .exchange import HttpExchange


class Model:
    config: Optional[Mapping[str, Any]] = None

    def __init__(self, exchange: Optional[HttpExchange] = None):
        self.exchange = exchange

    def get_data(self) -> Any:
        return self

    @property
    def app_version(self) -> Optional[str]:
        if self.exchange is None:
            return None
        app_info = self.exchange.request.state.get("app_info")
        return getattr(app_info, "version", None)

    def version_asset(self, path: str) -> str:
        """Append ``?v=<application version>`` (or ``&v=``) to an asset URL."""
        version = self.app_version
        if not version:
            return path
        separator = "&" if "?" in path else "?"
        return f"{path}{separator}v={version}"

    def to_dict(self) -> Dict[str, Any]:
        """Public instance attributes, minus the exchange."""
        return {
            key: value
            for key, value in vars(self).items()
            if not key.startswith("_") and key != "exchange"
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {sorted(self.to_dict())}>"
