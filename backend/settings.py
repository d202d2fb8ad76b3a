"""Paths, endpoints and transport settings. Each one can be overridden from the environment."""

import os
from pathlib import Path

APP_NAME = "looking-glass"
APP_VERSION = "1.0.0"

backend_dir = Path(__file__).parent
project_dir = backend_dir.parent

# DNS-over-HTTPS resolver
DOH_URL = os.environ.get("LG_DOH_URL", "https://looking-glass.nc.menhera.org/dns-query")
DNS_SERVER_LABEL = os.environ.get("LG_DNS_SERVER_LABEL", "looking-glass.nc.menhera.org#443")

# Per-router API, {router} is the catalog key
ROUTER_URL_TEMPLATE = os.environ.get(
    "LG_ROUTER_URL_TEMPLATE", "https://{router}.looking-glass.nc.menhera.org"
)

# Router catalog (path or http(s) URL; YAML or JSON, {routers: {key: {name, description}}})
ROUTER_CATALOG = os.environ.get("LG_ROUTER_CATALOG", str(project_dir / "config" / "routers.yml"))

# Transport timeout in seconds; the lookup core itself never times out
HTTP_TIMEOUT = float(os.environ.get("LG_HTTP_TIMEOUT", "30"))
