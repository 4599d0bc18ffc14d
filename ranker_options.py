"""

Command-line and config-file handling for the Contents package ranker.

Options come from three places, later ones winning:
    built-in defaults  <  contents_ranker.ini  <  command line

The config file is a plain INI file with an [options] section (the header may be omitted).
Values are read as Python literals when they look like one, otherwise as plain text:

    [options]
    mirrors = ["ftp.debian.org", "ftp.us.debian.org"]
    version = bookworm
    suites = ["main", "contrib"]
    topn = 20
    verbosity = verbose

A value of the wrong kind (e.g. a single string for mirrors) is ignored.
The architecture can only be given on the command line.

"""

import ast
import configparser
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, NamedTuple, Optional, Tuple, Union

from ranker_errors import MissingArchitecture

MAX_ARGS = 1000

OPTIONS_SECTION = "options"

# single-letter options; any other token is taken as the architecture
RESERVED_OPTIONS = ("v", "s", "m", "d", "p", "n", "h")

VERBOSITY_LEVELS = ("normal", "verbose", "silent")

ArgValue = Union[str, bool]

_POSITIONAL = re.compile(r"^([^-=]+.*)$")
_DASHED = re.compile(r"^-+(.+)$")
_DASHED_WITH_VALUE = re.compile(r"^-+(.+)=(.+)$")
_BARE_VALUE = re.compile(r"^[^-=]+$")
_LONG_VALUE = re.compile(r"^[^-].+$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class Options(NamedTuple):
    mirrors: Tuple[str, ...] = ("ftp.debian.org",)
    version: str = "stable"
    suites: Tuple[str, ...] = ("main",)
    top_n: int = 10
    verbosity: str = "normal"
    architecture: Optional[str] = None


class CommandLine(NamedTuple):
    architecture: Optional[str]
    options: Dict[str, ArgValue]


# config key -> (Options field, expected kind)
CONFIG_SCHEMA = {
    "mirrors": ("mirrors", "string-list"),
    "version": ("version", "string"),
    "suites": ("suites", "string-list"),
    "topn": ("top_n", "integer"),
    "verbosity": ("verbosity", "string"),
}


def tokenize_args(args: Iterable[str]) -> Dict[str, ArgValue]:
    """
    Turn raw arguments into a flat {name: value} map, True standing for a flag without a value.
    Supported forms:
        amd64           -> {"amd64": True}
        -n 5            -> {"n": "5"}
        --top=5         -> {"top": "5"}
        -vs             -> {"v": True, "s": True}
        --verbose       -> {"verbose": True}
    No validation happens here; a repeated name keeps the last value.
    """
    argv = list(args)
    configs: Dict[str, ArgValue] = {}
    index = 0
    while index < MAX_ARGS and index < len(argv):
        token = argv[index]
        following = argv[index + 1] if index + 1 < len(argv) else None
        if _POSITIONAL.match(token):
            configs[token] = True
        else:
            dashed = _DASHED.match(token)
            if dashed:
                body = dashed.group(1)
                with_value = _DASHED_WITH_VALUE.match(token)
                if with_value:
                    configs[with_value.group(1)] = with_value.group(2)
                elif following is not None and _BARE_VALUE.match(following):
                    configs[body] = following
                    index += 1
                elif "--" not in token:
                    for flag in body:
                        configs[flag] = True
                elif following is not None and _LONG_VALUE.match(following):
                    configs[body] = following
                    index += 1
                else:
                    configs[body] = True
        index += 1
    return configs


def parse_command_line(args: Iterable[str]) -> CommandLine:
    """
    Tokenize the arguments and move the architecture into its own slot.
    The architecture is the first name that is not a reserved option letter.
    """
    configs = tokenize_args(args)
    architecture = next((name for name in configs if name not in RESERVED_OPTIONS), None)
    if architecture is not None:
        del configs[architecture]
    return CommandLine(architecture, configs)


def parse_integer(value: ArgValue) -> int:
    """Read a leading integer from the value; anything unreadable counts as 0"""
    if value is True:
        return 1
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _decode_value(raw: str) -> object:
    try:
        return ast.literal_eval(raw)
    except (ValueError, SyntaxError):
        return raw.strip()


def load_config(path: Union[str, Path]) -> Dict[str, object]:
    """
    Read the INI config file and return its known keys with decoded values.
    A missing file gives an empty map; a broken one is reported and ignored.
    """
    path = Path(path)
    if not path.is_file():
        logging.debug("No config file at %s", path)
        return {}

    parser = configparser.ConfigParser(interpolation=None)
    try:
        text = path.read_text(encoding="utf-8")
        try:
            parser.read_string(text, source=str(path))
        except configparser.MissingSectionHeaderError:
            parser.read_string(f"[{OPTIONS_SECTION}]\n{text}", source=str(path))
    except (OSError, UnicodeDecodeError, configparser.Error) as e:
        logging.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}

    if not parser.has_section(OPTIONS_SECTION):
        logging.debug("Config file %s has no [%s] section", path, OPTIONS_SECTION)
        return {}

    config = {
        key: _decode_value(raw)
        for key, raw in parser.items(OPTIONS_SECTION)
        if key in CONFIG_SCHEMA
    }
    logging.debug("Got config values from %s: %r", path, config)
    return config


def _matches_kind(value: object, kind: str) -> bool:
    if kind == "string":
        return isinstance(value, str)
    if kind == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if kind == "string-list":
        return isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value)
    return False


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def resolve_options(command_line: CommandLine, config: Optional[Dict[str, object]] = None) -> Options:
    """
    Merge defaults, config file values and command-line values into one Options record.
    Raises MissingArchitecture when no architecture was given on the command line.
    """
    if not command_line.architecture:
        raise MissingArchitecture()

    values = Options()._asdict()
    values["architecture"] = command_line.architecture

    for key, value in (config or {}).items():
        if key not in CONFIG_SCHEMA:
            continue
        field, kind = CONFIG_SCHEMA[key]
        if not _matches_kind(value, kind):
            logging.debug("Ignoring config %s=%r: expected %s", key, value, kind)
            continue
        if field == "verbosity" and value not in VERBOSITY_LEVELS:
            logging.debug("Ignoring config verbosity=%r", value)
            continue
        values[field] = tuple(value) if kind == "string-list" else value

    for name, value in command_line.options.items():
        if name == "v":
            values["verbosity"] = "verbose"
        elif name == "s":
            values["verbosity"] = "silent"
        elif name in ("m", "d", "p", "n"):
            if value is True and name != "n":
                logging.warning("Option -%s needs a value, ignoring it", name)
                continue
            if name == "m":
                values["mirrors"] = tuple(value.split(","))
            elif name == "d":
                values["version"] = value
            elif name == "p":
                values["suites"] = tuple(value.split(","))
            else:
                values["top_n"] = parse_integer(value)
        else:
            continue
        logging.debug("Got cmd-line: -%s %s", name, value)

    values["mirrors"] = _unique(values["mirrors"])
    values["suites"] = _unique(values["suites"])
    return Options(**values)
