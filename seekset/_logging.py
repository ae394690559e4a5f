import hashlib
import logging
from collections.abc import Mapping
from typing import Any

# Create the library logger
logger = logging.getLogger("seekset")

# Add NullHandler to prevent "No handlers could be found" warnings
# if the application doesn't configure logging.
logger.addHandler(logging.NullHandler())


def redact_values(values: Mapping[str, Any] | Any) -> str:
    """
    Redacts cursor anchor values for logging.
    Hashes the values to allow correlation without revealing row data.
    """
    try:
        if isinstance(values, Mapping):
            redacted = {}
            for k, v in values.items():
                val_str = str(v).encode("utf-8")
                redacted[k] = hashlib.sha256(val_str).hexdigest()[:8]
            return str(redacted)
        else:
            return hashlib.sha256(str(values).encode("utf-8")).hexdigest()[:8]
    except Exception:
        return "<redaction_failed>"
