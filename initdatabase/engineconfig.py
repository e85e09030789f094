import json
from typing import Any, Dict, List
from urllib.parse import urlparse

from .errors import ConfigurationError

REQUIRED_SECTIONS = ["SQL"]
OPTIONAL_SECTIONS = ["PIPELINE"]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_database_url(v: str) -> bool:
    p = urlparse(v)
    return bool(p.scheme)


def build_engine_configuration_json(database_url: str) -> str:
    """
    Build the engine configuration JSON for a single database.

    Args:
        database_url: SQLAlchemy URL of the store, e.g. sqlite:////tmp/g2.db

    Returns:
        JSON string accepted by the engine SDK
    """
    if not _is_non_empty_str(database_url):
        raise ConfigurationError("A database URL is required to build the engine configuration")
    config = {
        "PIPELINE": {},
        "SQL": {"CONNECTION": database_url},
    }
    return json.dumps(config)


def validate_engine_configuration(engine_configuration_json: str) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []

    if not _is_non_empty_str(engine_configuration_json):
        return ["Engine configuration JSON is empty"]
    try:
        data = json.loads(engine_configuration_json)
    except json.JSONDecodeError as e:
        return [f"Engine configuration is not valid JSON: {e}"]
    if not isinstance(data, dict):
        return ["Engine configuration must be a JSON object"]

    for section in REQUIRED_SECTIONS:
        if section not in data:
            errors.append(f"Missing required section: {section}")
        elif not isinstance(data[section], dict):
            errors.append(f"Section '{section}' must be an object")

    for section in OPTIONAL_SECTIONS:
        if section in data and not isinstance(data[section], dict):
            errors.append(f"Section '{section}' must be an object if provided")

    sql = data.get("SQL")
    if isinstance(sql, dict):
        connection = sql.get("CONNECTION")
        if not _is_non_empty_str(connection):
            errors.append("SQL.CONNECTION must be a non-empty string")
        elif not _valid_database_url(connection):
            errors.append("SQL.CONNECTION must be a database URL (scheme://...)")

    return errors


def get_database_url(engine_configuration_json: str) -> str:
    """
    Extract SQL.CONNECTION from the engine configuration.

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    errors = validate_engine_configuration(engine_configuration_json)
    if errors:
        raise ConfigurationError("; ".join(errors))
    data: Dict[str, Any] = json.loads(engine_configuration_json)
    return data["SQL"]["CONNECTION"]


def redact_database_url(database_url: str) -> str:
    """Replace the password in a database URL with ***."""
    p = urlparse(database_url)
    if not p.password:
        return database_url
    netloc = p.netloc.replace(f":{p.password}@", ":***@", 1)
    return p._replace(netloc=netloc).geturl()
