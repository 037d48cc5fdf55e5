"""Strip API keys from URLs and exception text before they are logged."""
import re

_KEY_RE = re.compile(r"(api-key|apikey|api_key|token)=[^&\s]+", re.IGNORECASE)


def sanitize(text: object) -> str:
    """Replace the value of any ``api-key``/``apiKey``/``token`` parameter with ``***``."""
    return _KEY_RE.sub(r"\1=***", str(text))
