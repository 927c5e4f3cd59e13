"""
Authentication session models.
"""

from dataclasses import dataclass, field
from typing import Iterable, List


@dataclass(frozen=True)
class AuthenticationAccount:
    id: str
    label: str


@dataclass
class AuthenticationSession:
    """A signed-in GitHub identity with its OAuth access token."""
    id: str
    access_token: str
    account: AuthenticationAccount
    scopes: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.access_token:
            raise ValueError("Authentication session requires a non-empty access token")

    def covers(self, scopes: Iterable[str]) -> bool:
        """True if every requested scope was granted to this session."""
        return set(scopes).issubset(self.scopes)
