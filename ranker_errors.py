"""
Errors raised while ranking Debian Contents packages.

Every error here is fatal: the command line reports it and exits with a non-zero status.
Malformed index lines are never errors, they are skipped while counting.
"""

from typing import Iterable


class RankerError(RuntimeError):
    """Base class for every fatal condition of a ranking run"""


class MissingArchitecture(RankerError):
    def __init__(self) -> None:
        super().__init__(
            "Must have at least one argument as architecture name (e.g. amd64, arm64, mips)"
        )


class NoReachableMirror(RankerError):
    def __init__(self, mirrors: Iterable[str]) -> None:
        self.mirrors = list(mirrors)
        super().__init__(
            "Could not reach any of the following mirrors: " + ", ".join(self.mirrors)
        )


class ArchitectureListUnavailable(RankerError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Could not find 'Architectures:' line in {url}")


class UnsupportedArchitecture(RankerError):
    def __init__(self, architecture: str, supported: Iterable[str]) -> None:
        self.architecture = architecture
        self.supported = list(supported)
        super().__init__(
            f"{architecture} does not exist in architecture list.\n"
            f"Please use one of the following: {', '.join(self.supported)}"
        )


class ArtifactUnavailable(RankerError):
    def __init__(self, url: str, reason: object = None) -> None:
        self.url = url
        if reason is None:
            super().__init__(f"{url} does not exist.")
        else:
            super().__init__(f"Could not download {url}: {reason}")


class DecompressionFailure(RankerError):
    def __init__(self, url: str, reason: object) -> None:
        self.url = url
        super().__init__(f"Could not decompress {url}: {reason}")
