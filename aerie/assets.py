"""
Route config and asset lists merged into controller view data.

Route config file (``<stem>Config.json``)::

    {
      "title": "Home",
      "dependencies": ["/vendor/reset.css", "/vendor/app.js"],
      "css": ["/css/home.css"],
      "production": {"title": "Home (prod)"}
    }

Base keys are merged first, then the block named after the deployment
mode. The assets descriptor lists config ``dependencies`` (split by
extension), then ``css``/``styles``/``stylesheets`` and
``js``/``scripts``/``javascripts``, then the files found in the
controller's ``<stem>Assets/`` directory: individual files in
development, ``*.min.*`` bundles in production.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import DEVELOPMENT, PRODUCTION, Environment
from .utils import join_paths

logger = logging.getLogger("aerie.assets")

ENVIRONMENT_BLOCKS = (DEVELOPMENT, PRODUCTION)
CSS_KEYS = ("css", "styles", "stylesheets")
JS_KEYS = ("js", "scripts", "javascripts")


def read_route_config(path: Optional[Path]) -> Dict[str, Any]:
    """Parsed JSON config file, or ``{}`` when there is none."""
    if path is None or not Path(path).is_file():
        return {}
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Route config {path} must hold a JSON object")
    return data


def merge_config(
    file_config: Mapping[str, Any],
    environment: Environment,
    model_config: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """File base keys, then the environment block, then the model's config."""
    merged = {k: v for k, v in file_config.items() if k not in ENVIRONMENT_BLOCKS}
    block = file_config.get(environment.mode)
    if isinstance(block, Mapping):
        merged.update(block)
    if model_config:
        merged.update(model_config)
    return merged


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _extension(path: str) -> str:
    return os.path.splitext(path.split("?", 1)[0])[1].lower()


def list_asset_files(directory: Optional[Path], environment: Environment) -> List[Path]:
    """Files of an assets directory for the deployment mode, sorted."""
    if directory is None or not Path(directory).is_dir():
        return []
    selected = []
    for current, dirs, files in os.walk(directory):
        dirs.sort()
        for filename in sorted(files):
            minified = ".min." in filename
            if minified == environment.production:
                selected.append(Path(current) / filename)
    return selected


def build_assets(
    config: Mapping[str, Any],
    files: Iterable[Path],
    root: Path,
    url_prefix: str = "/",
) -> Dict[str, List[str]]:
    """Assemble ``{"css": [...], "js": [...]}`` for the view."""
    css: List[str] = []
    js: List[str] = []

    for dependency in _as_list(config.get("dependencies")):
        ext = _extension(dependency)
        if ext == ".css":
            css.append(dependency)
        elif ext in (".js", ".mjs"):
            js.append(dependency)
        else:
            logger.warning(f"Ignoring dependency with unknown type: {dependency}")

    for key in CSS_KEYS:
        css.extend(_as_list(config.get(key)))
    for key in JS_KEYS:
        js.extend(_as_list(config.get(key)))

    for path in files:
        url = join_paths(url_prefix, Path(path).relative_to(root).as_posix())
        ext = path.suffix.lower()
        if ext == ".css":
            css.append(url)
        elif ext in (".js", ".mjs"):
            js.append(url)

    return {"css": css, "js": js}
