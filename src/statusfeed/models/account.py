"""
Account metadata produced by one bootstrap round.

Built atomically by the
[AccountDataFetcher][statusfeed.services.bootstrap.AccountDataFetcher] and
replaced wholesale on every refetch, never partially mutated.
"""

from __future__ import annotations

from dataclasses import dataclass

from ._validation import validate_instance
from .profile import UserProfile
from .relay_list import RelayList


@dataclass(frozen=True, slots=True)
class AccountMetadata:
    """Profile, followings, and relay list of the logged-in account.

    Attributes:
        profile: The account's own profile (a placeholder if none was found).
        followings: Followed public keys, unique, in contact-list order.
        relay_list: Read/write relay list used for all subsequent traffic.
    """

    profile: UserProfile
    followings: tuple[str, ...]
    relay_list: RelayList

    def __post_init__(self) -> None:
        validate_instance(self.profile, UserProfile, "profile")
        validate_instance(self.relay_list, RelayList, "relay_list")
        object.__setattr__(self, "followings", tuple(dict.fromkeys(self.followings)))

    @property
    def pubkey(self) -> str:
        """Public key of the account this metadata belongs to."""
        return self.profile.pubkey

    @property
    def sync_key(self) -> tuple[tuple[str, ...], RelayList]:
        """The ``(followings, relay_list)`` pair that drives worker restarts."""
        return self.followings, self.relay_list
