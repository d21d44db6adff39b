"""
Toolkit version information and banner.
"""

import sys
from dataclasses import dataclass


__version__ = "1.0.0"


@dataclass(frozen=True)
class VersionInfo:
    """
    Version record for the toolkit.

    Attributes:
        name: Toolkit name
        version: Version number
        release: Release string
        date: Release date
        url_ver: Revision of the published version listing
    """

    name: str
    version: str
    release: str
    date: str
    url_ver: int = 1


def toolbox_version(verbose: bool = True) -> VersionInfo:
    """
    Return the toolkit version, optionally printing a banner.

    The banner is framed by dashed lines as wide as its longest line.
    """
    info = VersionInfo(
        name="Crazyflie Toolkit",
        version=__version__,
        release=f"(Python {sys.version_info.major}.{sys.version_info.minor})",
        date="19-Oct-2026",
    )

    if verbose:
        msg = [
            f"{info.name} Version: {info.version} {info.release}",
            f"Release Date: {info.date}",
        ]
        rule = "-" * max(len(m) for m in msg)
        print(rule)
        for m in msg:
            print(m)
        print(rule)

    return info
