"""Configuration loader for the Alipay provider.

The configuration lives in a YAML file with an ``alipay`` section. String
values may reference environment variables as ``${VAR_NAME}``, which keeps
secrets and private keys out of the file itself:

```yaml
alipay:
  client_id: "2021000000000000"
  sign_scheme: rsa2
  private_key_path: "${ALIPAY_PRIVATE_KEY_PATH}"
  alipay_public_key: "${ALIPAY_PUBLIC_KEY}"
  redirect_uri: https://example.com/alipay/callback
```
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import AlipayAuthConfigModel

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SOCIALAUTH_ALIPAY_CONFIG"
DEFAULT_CONFIG_FILE = "alipay.yaml"
ENV_VAR_PATTERN = re.compile(r"\${([A-Za-z0-9_]+)}")


def interpolate_env(value: Any) -> Any:
    """Replace ``${VAR}`` references in strings, recursing into lists and dicts.

    Raises:
        ValueError: If a referenced environment variable is not set
    """
    if isinstance(value, str):

        def _replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            resolved = os.environ.get(var_name)
            if resolved is None:
                raise ValueError(f"Environment variable not found: {var_name}")
            return resolved

        return ENV_VAR_PATTERN.sub(_replace, value)
    if isinstance(value, dict):
        return {key: interpolate_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_env(item) for item in value]
    return value


def load_alipay_config(config_path: Path | None = None) -> AlipayAuthConfigModel:
    """Load the Alipay provider configuration.

    Args:
        config_path: Optional path to the YAML file.
                    If not provided, looks for:
                    1. SOCIALAUTH_ALIPAY_CONFIG environment variable
                    2. ./alipay.yaml

    Returns:
        Validated AlipayAuthConfigModel

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        config_path = Path(env_path) if env_path else Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(f"Alipay config file not found at {config_path}")

    logger.debug(f"Loading Alipay config from: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML config file {config_path}: {e}") from e

    if not isinstance(raw_config, dict) or not isinstance(raw_config.get("alipay"), dict):
        raise ValueError(f"Config file {config_path} has no 'alipay' section")

    section = interpolate_env(raw_config["alipay"])
    try:
        return AlipayAuthConfigModel.model_validate(section)
    except ValidationError as e:
        raise ValueError(f"Invalid Alipay config: {e}") from e
