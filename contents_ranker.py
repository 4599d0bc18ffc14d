"""

This python tool downloads Debian's "Contents" indexes for the specified architecture
and reports the top N packages with the most files associated.

It picks the first reachable mirror, checks the architecture against the mirror's Release file,
then streams the Contents-<arch>.gz index of every requested suite and counts the files per package.
Packages of different suites are counted separately ("main/foo", "contrib/foo").

Options are read from contents_ranker.ini next to this file, then from the command line.

Usage:
    ./contents_ranker.py amd64 -n 20 -m ftp.uk.debian.org,ftp.debian.org -d stable -p main,contrib

"""

import gzip
import io
import logging
import sys
import textwrap
import urllib.error
import urllib.request
import zlib
from collections import Counter
from http.client import HTTPException
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from contents_index import aggregate_suite, format_ranking, rank_packages
from ranker_errors import (
    ArchitectureListUnavailable,
    ArtifactUnavailable,
    DecompressionFailure,
    MissingArchitecture,
    NoReachableMirror,
    RankerError,
    UnsupportedArchitecture,
)
from ranker_options import ArgValue, Options, load_config, parse_command_line, resolve_options

AGENT = "contents-ranker"

DEFAULT_CONFIG_PATH = Path(__file__).with_suffix(".ini")

HELP = textwrap.dedent(
    """\
    Usage: contents_ranker.py <architecture> [options]

    Show the top packages by file count from a Debian mirror's Contents indexes

    Options:
    -h  Display this help message
    -v  Verbose output
    -s  Suppress all diagnostic output
    -m  Comma-separated list of mirror hostnames (default: ftp.debian.org)
    -d  Distribution version, e.g. stable, bookworm (default: stable)
    -p  Comma-separated list of suites to include, e.g. main,contrib (default: main)
    -n  Number of top packages to report (default: 10)

    <architecture>
    Required architecture (e.g. amd64, arm64, i386)

    Example:
        contents_ranker.py amd64 -v -m ftp.debian.org,ftp.us.debian.org -d stable -n 10
    """
)

LOG_LEVELS = {
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
    "silent": logging.CRITICAL + 1,
}


def build_dist_url(mirror: str, version: str) -> str:
    """
    A bare host name is taken as a standard Debian mirror (https://<host>/debian),
    a mirror given with a scheme is used as the archive root.
    """
    if "://" in mirror:
        base = mirror.rstrip("/")
    else:
        base = f"https://{mirror.strip('/')}/debian"
    return f"{base}/dists/{version}"


def build_release_url(mirror: str, version: str) -> str:
    return f"{build_dist_url(mirror, version)}/Release"


def build_contents_url(mirror: str, version: str, suite: str, arch: str) -> str:
    """
    Generates and returns the Contents index link of one suite for the specified architecture
    """
    return f"{build_dist_url(mirror, version)}/{suite}/Contents-{arch}.gz"


def try_open_url(url: str, method: str = "GET"):
    """
    Opens the URL and returns the response.
    Returns None when the file is missing, on other HTTP errors or on network errors.
    """
    req = urllib.request.Request(url, headers={"User-Agent": AGENT}, method=method)
    try:
        return urllib.request.urlopen(req)
    except urllib.error.HTTPError as e:
        if e.code == 404:
            logging.debug("URL not found (404): %s", url)
        else:
            logging.debug("HTTP error fetching %s: %s", url, e)
        return None
    except (OSError, HTTPException) as e:
        # URLError, dropped connections and timeouts while reading the status line
        logging.debug("Network error fetching %s: %s", url, e)
        return None
    except ValueError as e:
        logging.debug("Invalid URL %s: %s", url, e)
        return None


def url_exists(url: str) -> bool:
    logging.debug("Checking if %s exists...", url)
    resp = try_open_url(url, method="HEAD")
    if resp is None:
        logging.debug("URL Failed: %s", url)
        return False
    with resp:
        ok = resp.status == 200
    logging.debug("URL %s: %s", "OK" if ok else "Failed", url)
    return ok


def find_mirror(mirrors: Sequence[str], version: str) -> Tuple[str, str]:
    """
    Return the first mirror (in the given order) serving the Release file of the version,
    together with that Release file's URL.
    """
    for mirror in mirrors:
        release_url = build_release_url(mirror, version)
        if url_exists(release_url):
            logging.info("Using mirror %s", mirror)
            return mirror, release_url
    raise NoReachableMirror(mirrors)


def fetch_text(url: str) -> str:
    resp = try_open_url(url)
    if resp is None:
        raise ArchitectureListUnavailable(url)
    try:
        with resp:
            return resp.read().decode("utf-8", errors="replace")
    except (OSError, HTTPException) as e:
        logging.debug("Failed reading %s: %s", url, e)
        raise ArchitectureListUnavailable(url) from e


def supported_architectures(release_text: str) -> List[str]:
    """
    Extracts the architecture names from the "Architectures:" line of a Release file.
    Returns an empty list when there is no such line.
    """
    for line in release_text.splitlines():
        if line.startswith("Architectures:"):
            archs = line.strip().lower().split()[1:]
            logging.debug("Final architecture list: %s", ", ".join(archs))
            return archs
    return []


def iter_contents_lines(url: str) -> Iterator[str]:
    """
    Streams the remote gzip Contents file and yields its text lines.
    The download is decompressed while it is read, so the whole index is never held in memory.
    """
    resp = try_open_url(url)
    if resp is None:
        raise ArtifactUnavailable(url)
    try:
        with resp, gzip.GzipFile(fileobj=resp) as gz_stream:
            text_stream = io.TextIOWrapper(gz_stream, encoding="utf-8", errors="replace")
            yield from text_stream
    except (gzip.BadGzipFile, EOFError, zlib.error) as e:
        raise DecompressionFailure(url, e) from e
    except (OSError, HTTPException) as e:
        raise ArtifactUnavailable(url, e) from e


def rank_contents(options: Options) -> List[Tuple[str, int]]:
    """
    Runs the whole ranking for the resolved options and returns the top rows.
    Every suite's index is checked before any of them is downloaded, so a missing
    index aborts the run before the heavy parsing starts.
    """
    mirror, release_url = find_mirror(options.mirrors, options.version)

    archs = supported_architectures(fetch_text(release_url))
    if not archs:
        raise ArchitectureListUnavailable(release_url)

    # Release lists and Contents file names are lowercase
    arch = options.architecture.lower()
    if arch not in archs:
        raise UnsupportedArchitecture(options.architecture, archs)
    logging.debug("%s found in list: %s", arch, ", ".join(archs))

    urls = {suite: build_contents_url(mirror, options.version, suite, arch) for suite in options.suites}
    for url in urls.values():
        if not url_exists(url):
            raise ArtifactUnavailable(url)

    logging.info("Gathering package info for suites: %s", ", ".join(options.suites))
    counts: Counter[str] = Counter()
    total = 0
    for suite, url in urls.items():
        logging.info("Reading Contents from: %s", url)
        subtotal = aggregate_suite(suite, iter_contents_lines(url), counts)
        logging.info("Total package files for %s suite: %d", suite, subtotal)
        total += subtotal
    logging.info("Total package files for all suites: %d", total)

    return rank_packages(counts, options.top_n)


def configure_logging(verbosity: str) -> None:
    """
    Configure logging based on verbosity level. Default is set to Warning, silent hides everything.
    """
    logging.basicConfig(
        level=LOG_LEVELS.get(verbosity, logging.WARNING),
        format="%(levelname)s: %(message)s",
        force=True,
    )


def command_line_verbosity(options: Dict[str, ArgValue]) -> str:
    verbosity = "normal"
    for name in options:
        if name == "v":
            verbosity = "verbose"
        elif name == "s":
            verbosity = "silent"
    return verbosity


def main(argv: Optional[Sequence[str]] = None, config_path: Optional[Path] = None) -> int:
    command_line = parse_command_line(sys.argv[1:] if argv is None else argv)

    # verbosity is needed before the options are resolved
    configure_logging(command_line_verbosity(command_line.options))
    logging.debug("Command-line arguments: %r", command_line)

    if "h" in command_line.options:
        print(HELP)
        return 0

    try:
        options = resolve_options(command_line, load_config(config_path or DEFAULT_CONFIG_PATH))
        configure_logging(options.verbosity)
        logging.debug("Final options: %r", options._asdict())
        rows = rank_contents(options)
    except MissingArchitecture as e:
        logging.error("%s", e)
        print(HELP, file=sys.stderr)
        return 1
    except RankerError as e:
        logging.error("%s", e)
        return 1

    if rows:
        print(format_ranking(rows))
    else:
        logging.warning("No packages found")
    return 0


if __name__ == "__main__":
    sys.exit(main())
