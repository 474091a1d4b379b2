"""
Raffle host list.

Operators pick up to three TikTok profiles to show as hosts. The list keeps
insertion order and refuses a second entry for the same normalized username.
"""

import logging
from typing import List, Tuple
from core.exceptions import DuplicateHostError, HostLimitError, InvalidArgumentError
from core.models import Profile
from core.validation import normalize_profile_key

logger = logging.getLogger(__name__)

MAX_HOSTS = 3


class HostList:
    def __init__(self, max_hosts: int = MAX_HOSTS):
        if max_hosts < 0:
            raise InvalidArgumentError("max_hosts", max_hosts, "Must not be negative")
        self.max_hosts = max_hosts
        self._hosts: List[Profile] = []

    @property
    def hosts(self) -> Tuple[Profile, ...]:
        return tuple(self._hosts)

    @property
    def is_full(self) -> bool:
        return len(self._hosts) >= self.max_hosts

    def __len__(self) -> int:
        return len(self._hosts)

    def __contains__(self, username: str) -> bool:
        key = normalize_profile_key(username)
        return any(normalize_profile_key(h.username) == key for h in self._hosts)

    def ensure_can_add(self, username: str) -> str:
        """Validate before any profile lookup; returns the normalized key"""
        key = normalize_profile_key(username)
        if key in self:
            raise DuplicateHostError(f"@{key}")
        if self.is_full:
            raise HostLimitError(self.max_hosts)
        return key

    def add(self, profile: Profile) -> Tuple[Profile, ...]:
        self.ensure_can_add(profile.username)
        self._hosts.append(profile)
        logger.info(f"Host added: {profile.username} ({len(self._hosts)}/{self.max_hosts})")
        return self.hosts

    def remove(self, username: str) -> Profile:
        key = normalize_profile_key(username)
        for index, host in enumerate(self._hosts):
            if normalize_profile_key(host.username) == key:
                removed = self._hosts.pop(index)
                logger.info(f"Host removed: {removed.username}")
                return removed
        raise InvalidArgumentError("username", username, "Not in the host list")

    def clear(self) -> None:
        self._hosts.clear()
