"""
Voter references.

A participant is identified on the wire by ``user:<ref>`` for registered
users or ``guest:<ref>`` for guests. The two namespaces never overlap.
"""

from typing import NamedTuple


USER = 'user'
GUEST = 'guest'


class InvalidVoterRefError(ValueError):
    """Raised when a voter reference string cannot be parsed."""
    pass


class VoterRef(NamedTuple):
    kind: str
    ref: str

    @classmethod
    def user(cls, ref: str) -> 'VoterRef':
        return cls(USER, ref)

    @classmethod
    def guest(cls, ref: str) -> 'VoterRef':
        return cls(GUEST, ref)

    @classmethod
    def parse(cls, value) -> 'VoterRef':
        """Parse ``user:<ref>`` / ``guest:<ref>`` (or pass a VoterRef through)."""
        if isinstance(value, VoterRef):
            return value
        if not isinstance(value, str):
            raise InvalidVoterRefError(f"Voter reference must be a string, got {type(value).__name__}")

        kind, sep, ref = value.partition(':')
        if not sep or kind not in (USER, GUEST) or not ref.strip():
            raise InvalidVoterRefError(
                f"Invalid voter reference '{value}'. Use 'user:<id>' or 'guest:<id>'"
            )
        return cls(kind, ref.strip())

    def lookup(self) -> dict:
        """ORM filter kwargs matching the participant with this identity."""
        if self.kind == USER:
            return {'user_ref': self.ref}
        return {'guest_ref': self.ref}

    def __str__(self):
        return f"{self.kind}:{self.ref}"
