import re
import unicodedata

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9-]+$")
SUBDOMAIN_MIN_LENGTH = 3
SUBDOMAIN_MAX_LENGTH = 100


def normalize_subdomain(value: str) -> str:
    if not value:
        return ""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    return value.strip().lower()


def is_valid_subdomain(value: str) -> bool:
    if not value:
        return False
    if not SUBDOMAIN_MIN_LENGTH <= len(value) <= SUBDOMAIN_MAX_LENGTH:
        return False
    return bool(SUBDOMAIN_PATTERN.match(value))
