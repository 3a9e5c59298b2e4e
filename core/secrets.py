"""
Secret Manager integration for production deployments.
"""
from __future__ import annotations
import os
from typing import Dict, List

from core.logger import get_logger

log = get_logger("core/secrets")

# Secret name -> AppConfig field refreshed once the secret is loaded
SECRETS_TO_LOAD: Dict[str, str] = {
    "ELASTIC_API_KEY": "elastic_api_key",
    "ELASTIC_CLOUD_ENDPOINT": "elastic_cloud_endpoint",
    "GCP_PROJECT_ID": "gcp_project_id",
}


def _secret_manager_enabled() -> bool:
    from core.config import config

    use_secret_manager = os.getenv("USE_SECRET_MANAGER", "false").lower() == "true"
    return use_secret_manager and config.environment == "production"


def get_secret(secret_name: str, default: str | None = None) -> str | None:
    """
    Retrieve secret from GCP Secret Manager or environment variable.

    In production with USE_SECRET_MANAGER=true, fetches from Secret Manager.
    Otherwise, falls back to environment variables.

    Args:
        secret_name: Name of the secret
        default: Default value if secret not found

    Returns:
        Secret value or default
    """
    from core.config import config

    if not _secret_manager_enabled():
        return os.getenv(secret_name, default)

    project_id = config.gcp_project_id
    if not project_id:
        log.warning("GCP_PROJECT_ID not set, falling back to env var")
        return os.getenv(secret_name, default)

    try:
        from google.cloud import secretmanager

        client = secretmanager.SecretManagerServiceClient()
        name = f"projects/{project_id}/secrets/{secret_name}/versions/latest"
        response = client.access_secret_version(request={"name": name})
        secret_value = response.payload.data.decode("UTF-8")

        log.debug(f"Retrieved secret '{secret_name}' from Secret Manager")
        return secret_value

    except Exception as e:
        log.warning(f"Failed to fetch secret '{secret_name}' from Secret Manager: {e}")
        log.info(f"Falling back to environment variable for '{secret_name}'")
        return os.getenv(secret_name, default)


def load_secrets_into_env() -> List[str]:
    """
    Load critical secrets from Secret Manager into environment variables.

    Call this during app initialization in production. Values already
    present in the environment are left untouched.

    Returns:
        Names of the secrets that were loaded
    """
    from core.config import config

    if not _secret_manager_enabled():
        log.info("Skipping Secret Manager - using environment variables")
        return []

    log.info("Loading secrets from GCP Secret Manager...")
    loaded: List[str] = []

    for secret_name, field_name in SECRETS_TO_LOAD.items():
        # Only load if not already set (Cloud Run may inject some)
        if os.getenv(secret_name):
            continue
        secret_value = get_secret(secret_name)
        if secret_value:
            os.environ[secret_name] = secret_value
            setattr(config, field_name, secret_value)
            loaded.append(secret_name)
            log.info(f"Loaded secret: {secret_name}")
        else:
            log.warning(f"Secret not found: {secret_name}")

    return loaded
