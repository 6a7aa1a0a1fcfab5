from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

APP_NAME = "graphql-search-proxy"
DEFAULT_ENVIRONMENT = "default"
API_KEY_HEADER = "authorization"
API_KEY_PREFIX = "Basic "
AUTHORIZATION_SOURCE_HEADER = "AuthorizationSource"
AUTHORIZATION_SOURCE = "API"
_REPO_ROOT = Path(__file__).resolve().parent.parent
_ENV_PATHS = [Path.cwd() / ".env", _REPO_ROOT / ".env"]
for _path in _ENV_PATHS:
    if _path.exists():
        load_dotenv(_path, override=True)

DEFAULT_SCHEMA_DIR = _REPO_ROOT / "schemas"
DEFAULT_SCHEMA_PATH = DEFAULT_SCHEMA_DIR / "schema.graphql"
DEFAULT_SERVER_PATH = _REPO_ROOT / "apollo-mcp-server"
DEFAULT_ENVIRONMENTS_FILE = _REPO_ROOT / "environments.json"


class ConfigurationError(RuntimeError):
    """Raised when the environment selection or file layout is unusable."""


@dataclass(frozen=True)
class ProxyConfig:
    environment: str
    endpoint_url: str
    api_key: str | None
    schema_dir: Path
    schema_path: Path
    server_path: Path

    def http_headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {
            API_KEY_HEADER: f"{API_KEY_PREFIX}{self.api_key}",
            AUTHORIZATION_SOURCE_HEADER: AUTHORIZATION_SOURCE,
        }

    def server_args(self) -> list[str]:
        args = [
            "--introspection",
            "--schema",
            str(self.schema_path),
            "--endpoint",
            self.endpoint_url,
        ]
        for name, value in self.http_headers().items():
            args.extend(["--header", f"{name}: {value}"])
        return args


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value).expanduser() if value else default


def _load_environments(path: Path) -> dict[str, dict]:
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path} must be valid JSON") from exc
    if not isinstance(parsed, dict):
        raise ConfigurationError(f"{path} must be a JSON object")
    return parsed


def load_proxy_config(*, environments_file: Path | None = None) -> ProxyConfig:
    """
    Resolve endpoint, API key and file locations for the selected environment.

    Without GRAPHQL_MCP_ENV (or without an environments file) everything comes
    from plain env vars; otherwise the named entry of the environments file wins.
    """
    environments_file = environments_file or _env_path(
        "GRAPHQL_ENVIRONMENTS_FILE", DEFAULT_ENVIRONMENTS_FILE
    )
    schema_dir = _env_path("GRAPHQL_SCHEMA_DIR", DEFAULT_SCHEMA_DIR)
    server_path = _env_path("MCP_SERVER_PATH", DEFAULT_SERVER_PATH)
    env_api_key = os.environ.get("GRAPHQL_API_KEY") or None
    selected = (os.environ.get("GRAPHQL_MCP_ENV") or "").strip()

    if not selected or not environments_file.exists():
        endpoint_url = (os.environ.get("GRAPHQL_ENDPOINT_URL") or "").strip()
        if not endpoint_url:
            raise ConfigurationError(
                "GRAPHQL_ENDPOINT_URL is not set. Set it in the environment or a .env file, "
                f"or select an entry of {environments_file} with GRAPHQL_MCP_ENV."
            )
        return ProxyConfig(
            environment=selected or DEFAULT_ENVIRONMENT,
            endpoint_url=endpoint_url,
            api_key=env_api_key,
            schema_dir=schema_dir,
            schema_path=_env_path("GRAPHQL_SCHEMA_PATH", schema_dir / DEFAULT_SCHEMA_PATH.name),
            server_path=server_path,
        )

    environments = _load_environments(environments_file)
    entry = environments.get(selected)
    if not isinstance(entry, dict):
        raise ConfigurationError(f'Environment "{selected}" not found in {environments_file}')
    endpoint_url = str(entry.get("endpoint") or "").strip()
    if not endpoint_url:
        raise ConfigurationError(f'Environment "{selected}" has no endpoint')

    return ProxyConfig(
        environment=selected,
        endpoint_url=endpoint_url,
        api_key=entry.get("apiKey") or env_api_key,
        schema_dir=schema_dir,
        schema_path=schema_dir / f"schema-{selected}.graphql",
        server_path=server_path,
    )
