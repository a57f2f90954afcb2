import re
from datetime import UTC, datetime

DOMAIN_RE = re.compile(r"^(?=.{1,253}$)[a-z0-9]+(?:-[a-z0-9]+)*(?:\.[a-z0-9]+(?:-[a-z0-9]+)*)+$")


def is_domain(value: str) -> bool:
    return bool(DOMAIN_RE.fullmatch(value))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def now() -> datetime:
    return datetime.now(UTC)

