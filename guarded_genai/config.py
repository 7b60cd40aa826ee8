"""
Configuration loading for guarded clients.

Loads settings from a YAML file, applies environment overrides, and
resolves the AI Guard token.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import boto3
import yaml
from botocore.exceptions import ClientError
from pydantic import BaseModel, ValidationError, field_validator

from .engine import DEFAULT_INPUT_RECIPE, DEFAULT_OUTPUT_RECIPE


logger = logging.getLogger(__name__)


CONFIG_PATH_ENV = "GUARDED_GENAI_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "guarded_genai.yaml"
TOKEN_ENV = "PANGEA_AI_GUARD_TOKEN"
TOKEN_SECRET_KEY = "PANGEA_AI_GUARD_TOKEN"

# Environment variable -> settings field
ENV_OVERRIDES = {
    "PANGEA_INPUT_RECIPE": "input_recipe",
    "PANGEA_OUTPUT_RECIPE": "output_recipe",
    "PANGEA_DOMAIN": "pangea_domain",
}


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


class GuardSettings(BaseModel):
    """Settings for a guarded client."""
    input_recipe: str = DEFAULT_INPUT_RECIPE
    output_recipe: str = DEFAULT_OUTPUT_RECIPE
    pangea_domain: str = "aws.us.pangea.cloud"
    apply_input_rewrites: bool = True
    pangea_token_secret: str | None = None

    @field_validator("input_recipe", "output_recipe", "pangea_domain")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"Configuration in {path} must be a mapping")
    return data


def load_settings(
    config_path: str | None = None,
    config_dict: dict | None = None,
) -> GuardSettings:
    """
    Load guard settings.

    Precedence, lowest first: defaults, the ``settings`` section of the
    YAML file (or ``config_dict``), then environment overrides.

    Args:
        config_path: Path to YAML configuration file
        config_dict: Configuration dictionary (takes precedence over path)

    Returns:
        Validated GuardSettings

    Raises:
        ConfigValidationError: On invalid YAML or invalid settings
    """
    if config_dict is None:
        if config_path is None:
            config_path = os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)

        path = Path(config_path)
        if path.exists():
            config_dict = _read_yaml(path)
        else:
            logger.warning(f"Guard config not found at {config_path}, using defaults")
            config_dict = {}

    settings = config_dict.get("settings") or {}
    if not isinstance(settings, dict):
        raise ConfigValidationError("settings must be a mapping")

    values = dict(settings)
    for env_var, field_name in ENV_OVERRIDES.items():
        if os.environ.get(env_var):
            values[field_name] = os.environ[env_var]

    try:
        return GuardSettings(**values)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid guard settings: {e}")


def validate_config(config_path: str) -> list[str]:
    """
    Validate a configuration file and return any errors.

    Returns:
        List of error messages. Empty list if valid.
    """
    path = Path(config_path)
    if not path.exists():
        return [f"Configuration file not found: {config_path}"]

    try:
        config = _read_yaml(path)
        if not config:
            return ["Configuration file is empty"]
        settings = config.get("settings") or {}
        if not isinstance(settings, dict):
            return ["settings must be a mapping"]
        GuardSettings(**settings)
    except ConfigValidationError as e:
        return [str(e)]
    except ValidationError as e:
        return [f"Invalid settings: {err['loc'][0]}: {err['msg']}" for err in e.errors()]

    return []


def get_secret_value(secret_name: str, key: str) -> str | None:
    """
    Read a value from an AWS Secrets Manager secret.

    The secret may be a JSON object (the key is looked up) or a plain string.
    """
    client = boto3.client("secretsmanager")
    try:
        response = client.get_secret_value(SecretId=secret_name)
    except ClientError as e:
        logger.error(f"Failed to read secret {secret_name}: {e}")
        raise ConfigValidationError(f"Could not read secret {secret_name}: {e}")

    secret = response.get("SecretString")
    if secret is None:
        return None

    try:
        parsed = json.loads(secret)
    except json.JSONDecodeError:
        return secret

    if isinstance(parsed, dict):
        return parsed.get(key)
    return secret


def resolve_pangea_token(
    token: str | None = None,
    settings: GuardSettings | None = None,
) -> str:
    """
    Resolve the AI Guard API token.

    Uses the explicit token, then the PANGEA_AI_GUARD_TOKEN environment
    variable, then the configured Secrets Manager secret.

    Raises:
        ConfigValidationError: If no token can be found
    """
    if token:
        return token

    token = os.environ.get(TOKEN_ENV)
    if token:
        return token

    if settings is not None and settings.pangea_token_secret:
        token = get_secret_value(settings.pangea_token_secret, TOKEN_SECRET_KEY)
        if token:
            return token

    raise ConfigValidationError(
        f"No AI Guard token: pass one explicitly, set {TOKEN_ENV}, "
        "or configure pangea_token_secret"
    )
