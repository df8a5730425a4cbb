"""Tuning profiles describing how a server is used."""

from __future__ import annotations

from enum import Enum


class Profile(str, Enum):
    """The workload a server is tuned for."""

    WEB = "WEB"
    OLTP = "OLTP"
    DW = "DW"
    MIXED = "Mixed"
    # A development machine or any non-production server that should
    # consume fewer resources than a regular server.
    DESKTOP = "Desktop"

    def __str__(self) -> str:
        return self.value


ALL_PROFILES = (Profile.WEB, Profile.OLTP, Profile.DW, Profile.MIXED, Profile.DESKTOP)


def parse_profile(value: str) -> Profile:
    """Turn a command-line value into a profile.

    The value is upper-cased before it is matched against the profile names.
    """
    candidate = str(value).upper()
    for profile in ALL_PROFILES:
        if profile.value == candidate:
            return profile
    names = " ".join(profile.value for profile in ALL_PROFILES)
    raise ValueError(f"must be one of [{names}]")