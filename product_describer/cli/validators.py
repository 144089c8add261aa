"""Input validation for CLI arguments."""
import re
import sys
import time
from typing import Optional

# Platform ids such as usr_..., prod_...
_ID_PATTERN = r'^[A-Za-z0-9_]+$'


def validate_id(value: str, label: str) -> None:
    """
    Validate a user or product id.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value:
        print(f"Error: {label} cannot be empty", file=sys.stderr)
        sys.exit(2)

    if not re.match(_ID_PATTERN, value):
        print(f"Error: Invalid {label} '{value}'", file=sys.stderr)
        print("\nAllowed characters: letters, numbers, underscores (_)", file=sys.stderr)
        sys.exit(2)


def validate_secret_value(value: str) -> None:
    """
    Validate secret value is not empty.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value or value.strip() == "":
        print("Error: Secret value cannot be empty", file=sys.stderr)
        sys.exit(2)


def parse_expires_at(value: Optional[str], now: Optional[float] = None) -> Optional[int]:
    """
    Parse an optional expiry given as a Unix timestamp in seconds.

    Returns:
        The timestamp, or None if no expiry was given

    Raises:
        SystemExit with code 2 if the value is not an integer in the future
    """
    if value is None or value.strip() == "":
        return None

    try:
        expires_at = int(value)
    except ValueError:
        print(f"Error: Expiration must be a Unix timestamp, got '{value}'", file=sys.stderr)
        print("\nExample: 1893456000", file=sys.stderr)
        sys.exit(2)

    current = time.time() if now is None else now
    if expires_at <= current:
        print(f"Error: Expiration {expires_at} is in the past", file=sys.stderr)
        sys.exit(2)
    return expires_at
