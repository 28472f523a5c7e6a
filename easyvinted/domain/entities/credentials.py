"""
Marketplace account credentials.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class VintedCredentials:
    """Email and clear-text password for one Vinted account."""

    email: str
    password: str = field(repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.email) and bool(self.password)
