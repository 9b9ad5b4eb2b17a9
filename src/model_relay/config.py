"""Configuration management for Model Relay.

Handles provider credential resolution, the fallback order, per-use-case
model hints, mock mode, and the local Ollama endpoint. Configuration is
loaded from TOML file (~/.model-relay/config.toml) with environment variable
overrides.

The relay only ever asks whether a credential is present; key values are
passed through to providers untouched.

Typical usage::

    from model_relay.config import load_config

    config = load_config()
    key = config.get_provider_key("gemini")
    hint = config.pick_model("review")
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from model_relay.types import DEFAULT_FALLBACK_ORDER, ProviderAttempt, Vendor

APP_DIR = Path.home() / ".model-relay"
CONFIG_PATH = APP_DIR / "config.toml"

DEFAULT_OLLAMA_HOST = "http://localhost:11434"

DEFAULT_MODELS: dict[str, str] = {
    "completion": "gemini-2.0-flash",
    "chat": "gemini-2.0-pro",
    "review": "gemini-2.0-pro",
}
FALLBACK_MODEL_HINT = "gemini-2.0-pro"

# Keys shorter than this are almost certainly truncated or placeholders.
MIN_KEY_LENGTH = 20

# Env var name → provider key in the providers dict.
_ENV_VAR_MAP: dict[str, str] = {
    "GEMINI_API_KEY": "gemini",
    "GROQ_API_KEY": "groq",
    "OPENAI_API_KEY": "openai",
}

# Reverse: provider key → env var name.
_PROVIDER_ENV_MAP: dict[str, str] = {v: k for k, v in _ENV_VAR_MAP.items()}

# Env var name → model kind in the models dict.
_MODEL_ENV_MAP: dict[str, str] = {
    "MODEL_COMPLETION": "completion",
    "MODEL_CHAT": "chat",
    "MODEL_REVIEW": "review",
}


@dataclass
class Config:
    """Application configuration.

    Attributes:
        providers: Mapping of provider name to API key
            (e.g. {"gemini": "AIza...", "groq": "gsk_..."}).
        ollama_host: Base URL of the local Ollama server.
        mock_mode: When True, the router answers with a fixed placeholder
            and never touches the network.
        models: Model hint per use case ("completion", "chat", "review").
        fallback_order: Ordered provider/model attempts.
    """

    providers: dict[str, str] = field(default_factory=dict)
    ollama_host: str = DEFAULT_OLLAMA_HOST
    mock_mode: bool = False
    models: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MODELS))
    fallback_order: tuple[ProviderAttempt, ...] = DEFAULT_FALLBACK_ORDER

    def get_provider_key(self, vendor: str) -> str | None:
        """Get the API key for a given provider.

        Checks the ``providers`` dict first, then falls back to the
        corresponding environment variable. Whitespace-only keys count as
        absent.

        Note:
            The env var fallback covers manually constructed ``Config()``
            instances (e.g. in tests) that bypass ``load_config()``.

        Args:
            vendor: Provider name (e.g. "gemini", "groq", "openai").

        Returns:
            The API key string, or None if not configured.
        """
        key = self.providers.get(vendor, "")
        if key and key.strip():
            return key.strip()
        env_var = _PROVIDER_ENV_MAP.get(vendor)
        if env_var:
            env_val = os.environ.get(env_var, "").strip()
            if env_val:
                return env_val
        return None

    def pick_model(self, kind: str = "chat") -> str:
        """Return the model hint for a use case.

        Args:
            kind: One of "completion", "chat", or "review".

        Returns:
            The configured model name, or a general-purpose default for
            unknown kinds.
        """
        return self.models.get(kind) or FALLBACK_MODEL_HINT

    def configured_vendors(self) -> list[Vendor]:
        """List remote vendors that have a credential present."""
        return [v for v in Vendor if v is not Vendor.OLLAMA and self.get_provider_key(v.value)]


@dataclass
class EnvironmentReport:
    """Result of checking the configuration before serving requests.

    Attributes:
        errors: Problems that make the relay unusable.
        warnings: Problems worth knowing about.
        providers: Vendors whose credential looks usable.
        mock_mode: Whether mock mode is on.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    providers: list[str] = field(default_factory=list)
    mock_mode: bool = False

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_environment(config: Config) -> EnvironmentReport:
    """Check credentials and mode flags for obvious misconfiguration.

    Args:
        config: Loaded configuration.

    Returns:
        EnvironmentReport listing errors, warnings, and usable providers.
    """
    report = EnvironmentReport(mock_mode=config.mock_mode)

    for vendor, env_var in _PROVIDER_ENV_MAP.items():
        key = config.get_provider_key(vendor)
        if not key:
            report.warnings.append(f"{env_var} not configured")
        elif len(key) < MIN_KEY_LENGTH:
            report.errors.append(f"{env_var} appears invalid (too short)")
        else:
            report.providers.append(vendor)

    if not report.providers and not config.mock_mode:
        names = ", ".join(_PROVIDER_ENV_MAP.values())
        report.errors.append(f"No AI API keys found (need {names}) and MOCK_MODE is disabled")

    if config.mock_mode:
        report.warnings.append("MOCK_MODE is enabled - all AI calls will return mock responses")

    return report


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _parse_fallback(raw: list[dict[str, Any]]) -> tuple[ProviderAttempt, ...]:
    """Convert ``[[fallback]]`` tables into provider attempts.

    Args:
        raw: List of tables, each with ``provider`` and ``model`` keys.

    Returns:
        Tuple of attempts in file order.

    Raises:
        ValueError: If a provider name is unknown or a model is missing.
    """
    attempts: list[ProviderAttempt] = []
    for entry in raw:
        provider = str(entry.get("provider", ""))
        model = str(entry.get("model", "")).strip()
        try:
            vendor = Vendor(provider)
        except ValueError:
            known = ", ".join(v.value for v in Vendor)
            raise ValueError(
                f"Unknown provider '{provider}' in fallback order. Known providers: {known}."
            ) from None
        if not model:
            raise ValueError(f"Fallback entry for '{provider}' is missing a model.")
        attempts.append(ProviderAttempt(vendor, model))
    return tuple(attempts)


def _apply_toml(config: Config, data: dict[str, Any]) -> None:
    """Apply parsed TOML data to a Config instance.

    Args:
        config: Config instance to populate.
        data: Parsed TOML dictionary.
    """
    if "mock_mode" in data:
        config.mock_mode = _parse_bool(data["mock_mode"])

    # --- Providers ---
    if "providers" in data:
        for toml_key, value in data["providers"].items():
            # Keys are like "gemini_api_key" → strip "_api_key" suffix.
            if toml_key.endswith("_api_key") and value:
                config.providers[toml_key[: -len("_api_key")]] = value

    # --- Ollama ---
    host = data.get("ollama", {}).get("host", "")
    if host:
        config.ollama_host = host

    # --- Models ---
    if "models" in data:
        config.models.update({k: str(v) for k, v in data["models"].items() if v})

    # --- Fallback order ---
    if "fallback" in data:
        config.fallback_order = _parse_fallback(data["fallback"])


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides.

    Args:
        config: Config instance to update.
    """
    for env_var, provider_name in _ENV_VAR_MAP.items():
        env_val = os.environ.get(env_var, "").strip()
        if env_val:
            config.providers[provider_name] = env_val

    for env_var, kind in _MODEL_ENV_MAP.items():
        env_val = os.environ.get(env_var, "").strip()
        if env_val:
            config.models[kind] = env_val

    host = os.environ.get("OLLAMA_HOST", "").strip()
    if host:
        config.ollama_host = host

    mock = os.environ.get("MOCK_MODE", "").strip()
    if mock:
        config.mock_mode = _parse_bool(mock)


def load_config() -> Config:
    """Load configuration from file and environment.

    Environment variables win over the TOML file for every setting they
    cover. A missing file yields the built-in defaults.

    Returns:
        Populated Config instance.

    Raises:
        ValueError: If the fallback order in the file names an unknown provider.
    """
    config = Config()

    if CONFIG_PATH.exists():
        with open(CONFIG_PATH, "rb") as f:
            _apply_toml(config, tomllib.load(f))

    _apply_env_overrides(config)

    return config


def write_config(
    config: Config,
    path: Path | None = None,
    *,
    env_providers: set[str] | None = None,
) -> None:
    """Serialize a Config to TOML and write to disk.

    Provider keys sourced from environment variables are excluded -- only
    values the user explicitly configured should be persisted.

    If the file already exists, its permissions are preserved after write.

    Args:
        config: Config instance to serialize.
        path: File path to write. Defaults to CONFIG_PATH.
        env_providers: Set of provider names whose keys came from env vars
            and should be excluded from the written file.
    """
    import tomlkit

    target = path or CONFIG_PATH
    env_provs = env_providers or set()

    existing_mode: int | None = None
    if target.exists():
        existing_mode = target.stat().st_mode & 0o777

    doc = tomlkit.document()
    doc.add("mock_mode", config.mock_mode)

    # --- Providers ---
    providers_table = tomlkit.table()
    for provider_name, key_value in sorted(config.providers.items()):
        if provider_name in env_provs:
            continue
        if key_value:
            providers_table.add(f"{provider_name}_api_key", key_value)
    doc.add("providers", providers_table)

    # --- Ollama ---
    ollama_table = tomlkit.table()
    ollama_table.add("host", config.ollama_host)
    doc.add("ollama", ollama_table)

    # --- Models ---
    models_table = tomlkit.table()
    for kind, model in sorted(config.models.items()):
        models_table.add(kind, model)
    doc.add("models", models_table)

    # --- Fallback order (array of tables, order preserved) ---
    fallback = tomlkit.aot()
    for attempt in config.fallback_order:
        entry = tomlkit.table()
        entry.add("provider", attempt.provider.value)
        entry.add("model", attempt.model)
        fallback.append(entry)
    doc.add("fallback", fallback)

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(tomlkit.dumps(doc), encoding="utf-8")

    if existing_mode is not None:
        target.chmod(existing_mode)
